import pytest

from arohcp_tooling.templatize.gotemplate import Template, TemplateError, render


def _join(*parts):
    return "-".join(parts)


def _fail(*_):
    raise ValueError("boom")


def test_field_chain():
    data = {"ctx": {"region": "uksouth"}}
    assert render("{{ .ctx.region }}", data) == data["ctx"]["region"]


def test_index_with_present_and_missing_keys():
    text = (
        "param maestroKeyVaultName = '{{index . \"region_maestro_keyvault\"}}'\n"
        "param maestroEventGridNamespacesName = '{{index . \"region_eventgrid_namespace\"}}'\n"
        "param maestroEventGridMaxClientSessionsPerAuthName = 4"
    )
    expected = (
        "param maestroKeyVaultName = 'kv'\n"
        "param maestroEventGridNamespacesName = ''\n"
        "param maestroEventGridMaxClientSessionsPerAuthName = 4"
    )
    assert render(text, {"region_maestro_keyvault": "kv"}) == expected


def test_missing_field_prints_no_value():
    assert render("{{ .absent }}", {}) == "<no value>"


def test_bool_prints_lowercase():
    assert render("{{ .flag }}", {"flag": True}) == "true"


def test_trim_markers_strip_surrounding_whitespace():
    assert render("a \n\t{{- .x -}}\n  b", {"x": "y"}) == "a" + "y" + "b"


def test_comment_is_dropped():
    assert render("x{{/* note */}}y", {}) == "x" + "y"


def test_function_call_and_pipeline_agree():
    functions = {"join": _join}
    direct = render('{{ join "a" .b }}', {"b": "c"}, functions)
    piped = render('{{ .b | join "a" }}', {"b": "c"}, functions)
    assert direct == piped == _join("a", "c")


def test_parenthesised_subexpression():
    items = ["a", "b", "c"]
    assert render('{{ len (index . "items") }}', {"items": items}) == str(len(items))


def test_printf_formats_arguments():
    assert render('{{ printf "%s-%d" .a 3 }}', {"a": "x"}) == "x-3"


@pytest.mark.parametrize("flag, expected", [(True, "yes"), (False, "no")])
def test_if_else(flag, expected):
    assert render("{{if .on}}yes{{else}}no{{end}}", {"on": flag}) == expected


@pytest.mark.parametrize(
    "value, expected", [("a", "first"), ("b", "second"), ("z", "other")]
)
def test_else_if_chain(value, expected):
    text = (
        '{{if eq .v "a"}}first{{else if eq .v "b"}}second'
        "{{else}}other{{end}}"
    )
    assert render(text, {"v": value}) == expected


def test_range_over_list_and_empty_else():
    items = ["a", "b"]
    text = "{{range .items}}[{{.}}]{{else}}empty{{end}}"
    assert render(text, {"items": items}) == "".join(f"[{i}]" for i in items)
    assert render(text, {"items": []}) == "empty"


def test_with_changes_dot_and_root_stays_reachable():
    data = {"a": {"name": "inner"}, "b": "outer"}
    assert render("{{with .a}}{{.name}}{{$.b}}{{end}}", data) == "inner" + "outer"


def test_unknown_function_fails_at_parse_time():
    with pytest.raises(TemplateError, match='function "nope" not defined'):
        Template("t", "{{ nope }}")


@pytest.mark.parametrize("text", ["{{if .x}}open", "{{end}}", "{{ .x", "{{}}"])
def test_malformed_templates(text):
    with pytest.raises(TemplateError):
        Template("t", text)


def test_function_errors_are_wrapped_with_template_name():
    template = Template("configTemplate", "{{ fail }}", {"fail": _fail})
    with pytest.raises(TemplateError, match="configTemplate.*error calling fail: boom"):
        template.render({})


def test_template_can_be_rendered_repeatedly():
    template = Template("t", "{{ .v }}")
    assert [template.render({"v": v}) for v in ("one", "two")] == ["one", "two"]


def test_field_through_nil_is_an_error():
    with pytest.raises(TemplateError):
        render("{{ .a.b }}", {})