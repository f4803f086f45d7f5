[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arohcp-tooling"
version = "0.1.0"
description = "Helpers for hosted OpenShift on Azure deployments: resource naming, text templates, manifest customization, image tag discovery and cluster-service ids"
requires-python = ">=3.10"
keywords = [
    "azure",
    "openshift",
    "helm",
    "kubernetes",
    "templating",
    "container-registry",
    "deployment",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.31",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[tool.hatch.build.targets.wheel]
packages = ["arohcp_tooling"]

[tool.hatch.build.targets.sdist]
include = [
    "arohcp_tooling",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.ruff.lint.isort]
known-first-party = ["arohcp_tooling"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
ignore_missing_imports = true

[tool.coverage.run]
source = ["arohcp_tooling"]
branch = true

[tool.coverage.report]
show_missing = true
