"""Pretty-printing of configuration values as JSON or YAML."""

from __future__ import annotations

import json
from typing import Any

import yaml

__all__ = ["pretty_print_json", "pretty_print_yaml"]

_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def pretty_print_json(value: Any) -> str:
    """Render ``value`` as two-space indented JSON with sorted keys."""
    text = json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)
    return text.translate(_JSON_ESCAPES)


def pretty_print_yaml(value: Any) -> str:
    """Render ``value`` as block-style YAML with sorted keys."""
    return yaml.safe_dump(
        value, default_flow_style=False, sort_keys=True, allow_unicode=True
    )