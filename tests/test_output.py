import json

import pytest
import yaml

from arohcp_tooling.templatize.output import pretty_print_json, pretty_print_yaml

SAMPLE = {"zeta": "1", "alpha": "2", "nested": {"b": ["x", "y"], "a": "z"}}


def test_json_layout_is_indented_and_sorted():
    assert pretty_print_json({"b": "2", "a": "1"}) == '{\n  "a": "1",\n  "b": "2"\n}'


def test_json_round_trip():
    assert json.loads(pretty_print_json(SAMPLE)) == SAMPLE


def test_json_keys_sorted():
    text = pretty_print_json(SAMPLE)
    assert text.index('"alpha"') < text.index('"nested"') < text.index('"zeta"')


def test_json_escapes_html_characters():
    value = {"k": "<a>&"}
    text = pretty_print_json(value)
    assert "<" not in text and ">" not in text and "&" not in text
    assert "\\u003c" in text
    assert json.loads(text) == value


def test_json_empty_mapping():
    assert pretty_print_json({}) == "{}"


def test_json_rejects_unserializable():
    with pytest.raises(TypeError):
        pretty_print_json({"k": object()})


def test_yaml_round_trip():
    assert yaml.safe_load(pretty_print_yaml(SAMPLE)) == SAMPLE


def test_yaml_is_block_style_and_sorted():
    text = pretty_print_yaml(SAMPLE)
    assert "{" not in text
    assert text.index("alpha:") < text.index("nested:") < text.index("zeta:")
    assert text.endswith("\n")


def test_yaml_rejects_unrepresentable():
    with pytest.raises(yaml.YAMLError):
        pretty_print_yaml({"k": object()})