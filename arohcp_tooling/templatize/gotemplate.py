"""A compact engine for the Go text/template language.

Supports text, comments, whitespace trim markers, field chains (``.a.b``,
``$``), literals, function calls, pipelines, parenthesised sub-expressions
and the ``if``/``else``/``range``/``with``/``end`` actions.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

__all__ = ["TemplateError", "Template", "render"]

NO_VALUE = "<no value>"
_SPACE = " \t\r\n"
_MISSING = object()
_UNSUPPORTED = {"define", "template", "block", "break", "continue"}

_ACTION_RE = re.compile(
    r'\{\{(-\s)?((?:"(?:\\.|[^"\\])*"|`[^`]*`|[^"`}]|\}(?!\}))*?)(\s-)?\}\}',
    re.DOTALL,
)
_TOKEN_RE = re.compile(
    r"""
      (?P<space>\s+)
    | (?P<string>"(?:\\.|[^"\\])*")
    | (?P<raw>`[^`]*`)
    | (?P<number>[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
    | (?P<field>\$?(?:\.[A-Za-z_]\w*)+|\.|\$)
    | (?P<ident>[A-Za-z_]\w*)
    | (?P<pipe>\|)
    | (?P<lparen>\()
    | (?P<rparen>\))
    """,
    re.VERBOSE,
)
_VERB_RE = re.compile(r"%([-+# 0]*)(\d*)(?:\.(\d+))?([a-zA-Z%])")


class TemplateError(Exception):
    """Raised when a template cannot be parsed or executed."""


# ---------------------------------------------------------------- formatting


def _format(value: Any) -> str:
    if value is None:
        return NO_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, Mapping):
        items = " ".join(f"{_format(k)}:{_format(v)}" for k, v in sorted(value.items()))
        return f"map[{items}]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format(v) for v in value) + "]"
    return str(value)


# ------------------------------------------------------------------ builtins


def _index(item: Any, *keys: Any) -> Any:
    for key in keys:
        if item is None:
            raise ValueError("index of untyped nil")
        if isinstance(item, Mapping):
            item = item.get(key, "")
        elif isinstance(item, str):
            item = item.encode("utf-8")[key]
        elif isinstance(item, Sequence):
            if not isinstance(key, int) or isinstance(key, bool):
                raise TypeError(f"cannot index slice/array with type {type(key).__name__}")
            if not 0 <= key < len(item):
                raise IndexError(f"index out of range: {key}")
            item = item[key]
        else:
            raise TypeError(f"can't index item of type {type(item).__name__}")
    return item


def _len(item: Any) -> int:
    if item is None:
        raise TypeError("len of nil pointer")
    return len(item)


def _eq(first: Any, *others: Any) -> bool:
    if not others:
        raise ValueError("missing argument for comparison")
    return any(first == other for other in others)


def _and(*args: Any) -> Any:
    for arg in args:
        if not arg:
            return arg
    return args[-1]


def _or(*args: Any) -> Any:
    for arg in args:
        if arg:
            return arg
    return args[-1]


def _sprint(*args: Any) -> str:
    parts: list[str] = []
    previous_is_str = True
    for position, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if position and not is_str and not previous_is_str:
            parts.append(" ")
        parts.append(_format(arg))
        previous_is_str = is_str
    return "".join(parts)


def _sprintln(*args: Any) -> str:
    return " ".join(_format(arg) for arg in args) + "\n"


def _sprintf(fmt: str, *args: Any) -> str:
    remaining = iter(args)

    def substitute(match: re.Match[str]) -> str:
        flags, width, precision, verb = match.groups()
        if verb == "%":
            return "%"
        arg = next(remaining, _MISSING)
        if arg is _MISSING:
            return f"%!{verb}(MISSING)"
        spec = "%" + flags + width + (f".{precision}" if precision is not None else "")
        if verb in "vst":
            return (spec + "s") % _format(arg)
        if verb == "q":
            return (spec + "s") % json.dumps(_format(arg), ensure_ascii=False)
        if verb in "dxXofeEgG":
            return (spec + verb) % arg
        return f"%!{verb}({_format(arg)})"

    return _VERB_RE.sub(substitute, fmt)


_BUILTINS: dict[str, Callable[..., Any]] = {
    "index": _index,
    "len": _len,
    "not": lambda value: not value,
    "and": _and,
    "or": _or,
    "eq": _eq,
    "ne": lambda a, b: a != b,
    "lt": lambda a, b: a < b,
    "le": lambda a, b: a <= b,
    "gt": lambda a, b: a > b,
    "ge": lambda a, b: a >= b,
    "print": _sprint,
    "println": _sprintln,
    "printf": _sprintf,
}


# ----------------------------------------------------------------------- AST


@dataclass(frozen=True)
class _Literal:
    value: Any


@dataclass(frozen=True)
class _Field:
    from_root: bool
    path: tuple[str, ...]


@dataclass(frozen=True)
class _Ident:
    name: str


@dataclass(frozen=True)
class _Pipeline:
    commands: tuple[tuple[Any, ...], ...]


@dataclass
class _Text:
    text: str


@dataclass
class _Action:
    pipeline: _Pipeline


@dataclass
class _Block:
    keyword: str
    pipeline: _Pipeline
    body: list[Any] = field(default_factory=list)
    else_body: list[Any] = field(default_factory=list)
    in_else: bool = False


# -------------------------------------------------------------------- parser


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise TemplateError(f"unexpected {text[pos]!r} in command")
        if match.lastgroup != "space":
            tokens.append((match.lastgroup, match.group()))
        pos = match.end()
    return tokens


class _ExpressionParser:
    def __init__(self, tokens: list[tuple[str, str]], functions: Mapping[str, Any]):
        self._tokens = tokens
        self._pos = 0
        self._functions = functions

    def parse(self) -> _Pipeline:
        pipeline = self._pipeline()
        if self._peek() is not None:
            raise TemplateError(f"unexpected {self._peek()[1]!r} in operand")
        return pipeline

    def _peek(self) -> tuple[str, str] | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _pipeline(self) -> _Pipeline:
        commands = [self._command()]
        while (token := self._peek()) is not None and token[0] == "pipe":
            self._pos += 1
            commands.append(self._command())
        return _Pipeline(tuple(commands))

    def _command(self) -> tuple[Any, ...]:
        operands = []
        while (token := self._peek()) is not None and token[0] not in ("pipe", "rparen"):
            operands.append(self._operand())
        if not operands:
            raise TemplateError("missing value for command")
        return tuple(operands)

    def _operand(self) -> Any:
        kind, text = self._tokens[self._pos]
        self._pos += 1
        if kind == "lparen":
            inner = self._pipeline()
            token = self._peek()
            if token is None or token[0] != "rparen":
                raise TemplateError("unclosed left paren")
            self._pos += 1
            return inner
        if kind == "string":
            try:
                return _Literal(json.loads(text))
            except json.JSONDecodeError as exc:
                raise TemplateError(f"invalid string {text}") from exc
        if kind == "raw":
            return _Literal(text[1:-1])
        if kind == "number":
            return _Literal(int(text) if re.fullmatch(r"[-+]?\d+", text) else float(text))
        if kind == "field":
            if text == ".":
                return _Field(False, ())
            from_root = text.startswith("$")
            return _Field(from_root, tuple(text.lstrip("$").split(".")[1:]))
        if kind == "ident":
            keywords = {"true": True, "false": False, "nil": None}
            if text in keywords:
                return _Literal(keywords[text])
            if text not in self._functions:
                raise TemplateError(f'function "{text}" not defined')
            return _Ident(text)
        raise TemplateError(f"unexpected {text!r} in operand")


def _parse_pipeline(text: str, functions: Mapping[str, Any]) -> _Pipeline:
    return _ExpressionParser(_tokenize(text), functions).parse()


def _lex(text: str) -> list[tuple[str, str]]:
    items: list[tuple[str, str]] = []
    pos = 0
    trim_next = False

    def add_text(chunk: str) -> None:
        if "{{" in chunk:
            raise TemplateError("unclosed action")
        if chunk:
            items.append(("text", chunk))

    for match in _ACTION_RE.finditer(text):
        chunk = text[pos:match.start()]
        if trim_next:
            chunk = chunk.lstrip(_SPACE)
        if match.group(1):
            chunk = chunk.rstrip(_SPACE)
        add_text(chunk)
        body = match.group(2).strip(_SPACE)
        if not (body.startswith("/*") and body.endswith("*/")):
            items.append(("action", body))
        trim_next = match.group(3) is not None
        pos = match.end()
    tail = text[pos:]
    add_text(tail.lstrip(_SPACE) if trim_next else tail)
    return items


def _build(items: list[tuple[str, str]], functions: Mapping[str, Any]) -> list[Any]:
    root: list[Any] = []
    stack: list[tuple[_Block, bool]] = []

    def current() -> list[Any]:
        if not stack:
            return root
        block = stack[-1][0]
        return block.else_body if block.in_else else block.body

    for kind, content in items:
        if kind == "text":
            current().append(_Text(content))
            continue
        keyword, _, rest = content.partition(" ")
        rest = rest.strip(_SPACE)
        if keyword in ("if", "range", "with"):
            block = _Block(keyword, _parse_pipeline(rest, functions))
            current().append(block)
            stack.append((block, False))
        elif keyword == "else":
            if not stack or stack[-1][0].in_else:
                raise TemplateError("unexpected {{else}}")
            block = stack[-1][0]
            block.in_else = True
            if rest:
                sub_keyword, _, sub_rest = rest.partition(" ")
                if sub_keyword not in ("if", "with"):
                    raise TemplateError(f"unexpected {sub_keyword!r} after else")
                nested = _Block(sub_keyword, _parse_pipeline(sub_rest, functions))
                block.else_body.append(nested)
                stack.append((nested, True))
        elif keyword == "end":
            if not stack:
                raise TemplateError("unexpected {{end}}")
            while stack.pop()[1]:
                pass
        elif keyword in _UNSUPPORTED:
            raise TemplateError(f"unsupported action {{{{{keyword}}}}}")
        else:
            current().append(_Action(_parse_pipeline(content, functions)))
    if stack:
        raise TemplateError("unexpected EOF")
    return root


# ------------------------------------------------------------------ executor


class _Executor:
    def __init__(self, root: Any, functions: Mapping[str, Callable[..., Any]]):
        self._root = root
        self._functions = functions

    def run(self, nodes: list[Any], dot: Any, out: list[str]) -> None:
        for node in nodes:
            if isinstance(node, _Text):
                out.append(node.text)
            elif isinstance(node, _Action):
                out.append(_format(self.pipeline(node.pipeline, dot)))
            else:
                self._block(node, dot, out)

    def _block(self, block: _Block, dot: Any, out: list[str]) -> None:
        value = self.pipeline(block.pipeline, dot)
        if block.keyword == "if":
            self.run(block.body if value else block.else_body, dot, out)
        elif block.keyword == "with":
            if value:
                self.run(block.body, value, out)
            else:
                self.run(block.else_body, dot, out)
        else:
            elements = self._range_elements(value)
            if not elements:
                self.run(block.else_body, dot, out)
            for element in elements:
                self.run(block.body, element, out)

    @staticmethod
    def _range_elements(value: Any) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, Mapping):
            return [value[key] for key in sorted(value)]
        if isinstance(value, bool) or isinstance(value, str):
            raise TemplateError(f"range can't iterate over {_format(value)}")
        if isinstance(value, int):
            return list(range(value))
        if isinstance(value, Sequence):
            return list(value)
        raise TemplateError(f"range can't iterate over {_format(value)}")

    def pipeline(self, pipeline: _Pipeline, dot: Any) -> Any:
        result: Any = _MISSING
        for command in pipeline.commands:
            result = self._command(command, dot, result)
        return result

    def _command(self, command: tuple[Any, ...], dot: Any, piped: Any) -> Any:
        head, *args = command
        if isinstance(head, _Ident):
            values = [self._operand(arg, dot) for arg in args]
            if piped is not _MISSING:
                values.append(piped)
            return self._call(head.name, values)
        if args or piped is not _MISSING:
            raise TemplateError("can't give argument to non-function")
        return self._operand(head, dot)

    def _operand(self, operand: Any, dot: Any) -> Any:
        if isinstance(operand, _Literal):
            return operand.value
        if isinstance(operand, _Field):
            return self._field(operand, dot)
        if isinstance(operand, _Pipeline):
            return self.pipeline(operand, dot)
        return self._call(operand.name, [])

    def _field(self, operand: _Field, dot: Any) -> Any:
        value = self._root if operand.from_root else dot
        for name in operand.path:
            if value is None:
                raise TemplateError(f"nil pointer evaluating .{name}")
            if isinstance(value, Mapping):
                value = value.get(name)
            elif hasattr(value, name):
                value = getattr(value, name)
            else:
                raise TemplateError(
                    f"can't evaluate field {name} in type {type(value).__name__}"
                )
        return value

    def _call(self, name: str, values: list[Any]) -> Any:
        try:
            return self._functions[name](*values)
        except TemplateError:
            raise
        except Exception as exc:
            raise TemplateError(f"error calling {name}: {exc}") from exc


# -------------------------------------------------------------------- public


class Template:
    """A parsed template that can be rendered against data many times."""

    def __init__(
        self,
        name: str,
        text: str,
        functions: Mapping[str, Callable[..., Any]] | None = None,
    ):
        self.name = name
        self._functions = {**_BUILTINS, **(functions or {})}
        try:
            self._nodes = _build(_lex(text), self._functions)
        except TemplateError as exc:
            raise TemplateError(f"template: {name}: {exc}") from None

    def render(self, data: Any) -> str:
        """Execute the template with ``data`` as the initial dot."""
        out: list[str] = []
        try:
            _Executor(data, self._functions).run(self._nodes, data, out)
        except TemplateError as exc:
            raise TemplateError(f"template: {self.name}: {exc}") from exc
        return "".join(out)


def render(
    text: str,
    data: Any,
    functions: Mapping[str, Callable[..., Any]] | None = None,
) -> str:
    """Parse ``text`` and render it against ``data`` in one step."""
    return Template("template", text, functions).render(data)