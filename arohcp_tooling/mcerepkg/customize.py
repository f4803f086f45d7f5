"""Turn plain Kubernetes manifests into parameterised Helm chart templates."""

from __future__ import annotations

import copy
import os
from collections.abc import Callable, Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml

__all__ = [
    "OPERAND_IMAGE_ENV_VAR_PREFIX",
    "IMAGE_REGISTRY_PARAM_NAME",
    "MCE_OPERATOR_DEPLOYMENT_NAME",
    "RELEASE_NAMESPACE",
    "SanityCheckError",
    "parameterize_image_registry",
    "make_nested_map",
    "is_deployment",
    "is_operator_deployment",
    "is_role_binding",
    "is_cluster_role_binding",
    "is_operand_image_env_var",
    "parameterize_namespace",
    "parameterize_role_binding_subjects_namespace",
    "parameterize_cluster_role_binding_subjects_namespace",
    "parameterize_operands_image_registries",
    "parameterize_deployment",
    "annotation_cleaner",
    "customize_manifests",
    "load_scaffold_templates",
    "sanity_check",
]

OPERAND_IMAGE_ENV_VAR_PREFIX = "OPERAND_IMAGE_"
IMAGE_REGISTRY_PARAM_NAME = "imageRegistry"
MCE_OPERATOR_DEPLOYMENT_NAME = "multicluster-engine-operator"
RELEASE_NAMESPACE = "{{ .Release.Namespace }}"

_DEPLOYMENT_GVK = ("apps/v1", "Deployment")
_ROLE_BINDING_GVK = ("rbac.authorization.k8s.io/v1", "RoleBinding")
_CLUSTER_ROLE_BINDING_GVK = ("rbac.authorization.k8s.io/v1", "ClusterRoleBinding")
_SCRAPED_ANNOTATIONS = ("openshift.io", "operatorframework.io", "olm", "alm-examples", "createdAt")

Manifest = dict[str, Any]
CustomizerResult = tuple[Manifest, "dict[str, str] | None"]


class SanityCheckError(ValueError):
    """Raised when manifests fail the bundle sanity checks; holds every problem."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = self.errors[0]
        else:
            message = "[" + ", ".join(self.errors) + "]"
        super().__init__(message)


# ------------------------------------------------------------------ helpers


def _gvk(obj: Mapping[str, Any]) -> tuple[Any, Any]:
    return obj.get("apiVersion", ""), obj.get("kind", "")


def _name(obj: Mapping[str, Any]) -> str:
    metadata = obj.get("metadata")
    if isinstance(metadata, Mapping):
        return metadata.get("name") or ""
    return ""


def _namespace(obj: Mapping[str, Any]) -> str:
    metadata = obj.get("metadata")
    if isinstance(metadata, Mapping):
        return metadata.get("namespace") or ""
    return ""


def _nested_mapping(obj: Mapping[str, Any], *keys: str) -> dict[str, Any] | None:
    current: Any = obj
    for key in keys:
        value = current.get(key)
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValueError(f"{'.'.join(keys)}: expected a mapping, got {type(value).__name__}")
        current = value
    return current


def _mappings(value: Any, where: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f"{where}: expected a list of mappings")
    return value


def _containers(obj: Mapping[str, Any]) -> list[dict[str, Any]]:
    pod_spec = _nested_mapping(obj, "spec", "template", "spec")
    if pod_spec is None:
        return []
    return _mappings(pod_spec.get("containers"), "spec.template.spec.containers")


def _env(container: Mapping[str, Any]) -> list[dict[str, Any]]:
    return _mappings(container.get("env"), "env")


def _text(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _parameterize_subjects(obj: Manifest) -> None:
    for subject in _mappings(obj.get("subjects"), "subjects"):
        if subject.get("kind") == "ServiceAccount":
            subject["namespace"] = RELEASE_NAMESPACE


# -------------------------------------------------------------- predicates


def parameterize_image_registry(image_ref: str, registry_param_name: str) -> str:
    """Replace the registry part of ``image_ref`` with a Helm values reference."""
    registry = image_ref.split("/")[0]
    return f"{{{{ .Values.{registry_param_name} }}}}{image_ref[len(registry):]}"


def make_nested_map(flat_map: Mapping[str, str]) -> dict[str, Any]:
    """Expand dotted keys (``a.b.c``) into nested dictionaries."""
    nested: dict[str, Any] = {}
    for key in sorted(flat_map):
        *parents, leaf = key.split(".")
        current = nested
        for part in parents:
            child = current.setdefault(part, {})
            if not isinstance(child, dict):
                raise ValueError(f"parameter {key!r} conflicts with a value at {part!r}")
            current = child
        current[leaf] = flat_map[key]
    return nested


def is_deployment(obj: Mapping[str, Any]) -> bool:
    """True for an apps/v1 Deployment."""
    return _gvk(obj) == _DEPLOYMENT_GVK


def is_operator_deployment(obj: Mapping[str, Any]) -> bool:
    """True for the multicluster-engine operator Deployment."""
    return is_deployment(obj) and _name(obj) == MCE_OPERATOR_DEPLOYMENT_NAME


def is_role_binding(obj: Mapping[str, Any]) -> bool:
    """True for an rbac.authorization.k8s.io/v1 RoleBinding."""
    return _gvk(obj) == _ROLE_BINDING_GVK


def is_cluster_role_binding(obj: Mapping[str, Any]) -> bool:
    """True for an rbac.authorization.k8s.io/v1 ClusterRoleBinding."""
    return _gvk(obj) == _CLUSTER_ROLE_BINDING_GVK


def is_operand_image_env_var(name: str) -> bool:
    """True for an environment variable naming an operand image."""
    return name.startswith(OPERAND_IMAGE_ENV_VAR_PREFIX)


# -------------------------------------------------------------- customizers


def parameterize_namespace(obj: Manifest) -> CustomizerResult:
    """Point a namespaced object at the release namespace."""
    if not _namespace(obj):
        return obj, None
    result = copy.deepcopy(obj)
    result.setdefault("metadata", {})["namespace"] = RELEASE_NAMESPACE
    return result, None


def parameterize_role_binding_subjects_namespace(obj: Manifest) -> CustomizerResult:
    """Point a RoleBinding's service account subjects at the release namespace."""
    if not is_role_binding(obj):
        return obj, None
    result = copy.deepcopy(obj)
    try:
        _parameterize_subjects(result)
    except ValueError as exc:
        raise ValueError(f"failed to convert unstructured object to RoleBinding: {exc}") from exc
    return result, None


def parameterize_cluster_role_binding_subjects_namespace(obj: Manifest) -> CustomizerResult:
    """Point a ClusterRoleBinding's service account subjects at the release namespace."""
    if not is_cluster_role_binding(obj):
        return obj, None
    result = copy.deepcopy(obj)
    try:
        _parameterize_subjects(result)
    except ValueError as exc:
        raise ValueError(
            f"failed to convert unstructured object to ClusterRoleBinding: {exc}"
        ) from exc
    return result, None


def parameterize_operands_image_registries(obj: Manifest) -> CustomizerResult:
    """Parameterise the registry of operand images in the operator Deployment."""
    if not is_operator_deployment(obj):
        return obj, None
    result = copy.deepcopy(obj)
    try:
        for container in _containers(result):
            for env in _env(container):
                if is_operand_image_env_var(_text(env.get("name"), "env.name")):
                    env["value"] = parameterize_image_registry(
                        _text(env.get("value"), "env.value"), IMAGE_REGISTRY_PARAM_NAME
                    )
    except ValueError as exc:
        raise ValueError(f"failed to convert unstructured object to Deployment: {exc}") from exc
    return result, {IMAGE_REGISTRY_PARAM_NAME: ""}


def parameterize_deployment(obj: Manifest) -> CustomizerResult:
    """Parameterise the registry of every container image in a Deployment."""
    if not is_deployment(obj):
        return obj, None
    result = copy.deepcopy(obj)
    try:
        for container in _containers(result):
            container["image"] = parameterize_image_registry(
                _text(container.get("image"), "image"), IMAGE_REGISTRY_PARAM_NAME
            )
    except ValueError as exc:
        raise ValueError(f"failed to convert unstructured object to Deployment: {exc}") from exc
    return result, {IMAGE_REGISTRY_PARAM_NAME: ""}


def annotation_cleaner(obj: Manifest) -> CustomizerResult:
    """Drop OLM and OpenShift annotations; remove the field if none remain."""
    result = copy.deepcopy(obj)
    metadata = result.get("metadata")
    if not isinstance(metadata, dict):
        return result, None
    annotations = metadata.get("annotations")
    if not isinstance(annotations, Mapping):
        annotations = {}
    cleaned = {
        key: value
        for key, value in annotations.items()
        if not any(prefix in str(key) for prefix in _SCRAPED_ANNOTATIONS)
    }
    if cleaned:
        metadata["annotations"] = cleaned
    else:
        metadata.pop("annotations", None)
    return result, None


_CUSTOMIZERS: tuple[Callable[[Manifest], CustomizerResult], ...] = (
    parameterize_namespace,
    parameterize_role_binding_subjects_namespace,
    parameterize_cluster_role_binding_subjects_namespace,
    parameterize_operands_image_registries,
    parameterize_deployment,
    annotation_cleaner,
)


def customize_manifests(objects: Iterable[Manifest]) -> tuple[list[Manifest], dict[str, Any]]:
    """Apply every customizer to each object; return the objects and chart values."""
    parameters: dict[str, str] = {}
    customized: list[Manifest] = []
    for obj in objects:
        for customizer in _CUSTOMIZERS:
            try:
                obj, new_parameters = customizer(obj)
            except ValueError as exc:
                raise ValueError(f"failed to apply customer function: {exc}") from exc
            if new_parameters:
                parameters.update(new_parameters)
        customized.append(obj)
    return customized, make_nested_map(parameters)


# ----------------------------------------------------------------- scaffold


def _walk(path: Path) -> Iterator[Path]:
    yield path
    if path.is_dir() and not path.is_symlink():
        for child in sorted(path.iterdir(), key=lambda p: p.name):
            yield from _walk(child)


def load_scaffold_templates(scaffold_dir: str | os.PathLike[str]) -> list[Manifest]:
    """Load every .yaml/.yml file below ``scaffold_dir`` as a manifest, in path order."""
    os.lstat(scaffold_dir)
    manifests: list[Manifest] = []
    for path in _walk(Path(scaffold_dir)):
        is_directory = path.is_dir() and not path.is_symlink()
        if is_directory or path.suffix not in (".yaml", ".yml"):
            continue
        content = path.read_text(encoding="utf-8")
        document = next(iter(yaml.safe_load_all(content)), None)
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        manifests.append(document)
    return manifests


# --------------------------------------------------------------- validation


def sanity_check(objects: Iterable[Manifest]) -> None:
    """Check the bundle holds the operator Deployment with operand image variables."""
    errors: list[str] = []
    operator_deployment_found = False
    for obj in objects:
        if not is_operator_deployment(obj):
            continue
        operator_deployment_found = True
        operand_env_found = False
        try:
            operand_env_found = any(
                is_operand_image_env_var(_text(env.get("name"), "env.name"))
                for container in _containers(obj)
                for env in _env(container)
            )
        except ValueError as exc:
            errors.append(f"deployment is invalid: {exc}")
        if not operand_env_found:
            errors.append("no operand image env vars found in the operator deployment")
    if not operator_deployment_found:
        errors.append("no operator deployment found in the bundle")
    if errors:
        raise SanityCheckError(errors)