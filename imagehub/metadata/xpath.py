"""Typed path templates for the Datahub data definition.

The data definition describes fields with short, unprefixed paths such as::

    descriptiveMetadata[@xml:lang="{language}"]/objectIdentificationWrap/titleWrap

The harvested schema (and its namespace prefix) is only known from
configuration, so the templates are parsed once into :class:`PathTemplate`
objects and rendered per namespace and language.  Rendering qualifies every
unprefixed element and attribute name with the namespace prefix, leaves
``xml:`` (and any explicit prefix) alone, and anchors the result on the
``descendant::`` axis so the match may sit anywhere below the context node.

Supported grammar::

    path      := step ("/" step)*
    step      := "@" qname | qname predicate*
    predicate := "[" ( "@" qname "=" literal
                     | qname ("/" qname)* "=" literal
                     | integer ) "]"
    literal   := '"' chars '"' | "'" chars "'"

An ``@attribute`` step may only appear last.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Union

LANGUAGE_PLACEHOLDER = "{language}"

_NAME_RE = re.compile(r"[A-Za-z_][\w.\-]*")
_INT_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class Name:
    local: str
    prefix: Optional[str] = None

    def render(self, namespace: str) -> str:
        if self.prefix:
            return f"{self.prefix}:{self.local}"
        return f"{namespace}:{self.local}"


@dataclass(frozen=True)
class AttributeTest:
    """``[@name="value"]``"""

    name: Name
    value: str

    def render(self, namespace: str, language: str) -> str:
        return f"[@{self.name.render(namespace)}={_literal(self.value, language)}]"


@dataclass(frozen=True)
class ChildTest:
    """``[child/grandchild="value"]``"""

    path: tuple[Name, ...]
    value: str

    def render(self, namespace: str, language: str) -> str:
        steps = "/".join(name.render(namespace) for name in self.path)
        return f"[{steps}={_literal(self.value, language)}]"


@dataclass(frozen=True)
class Position:
    """``[2]``"""

    index: int

    def render(self, namespace: str, language: str) -> str:
        return f"[{self.index}]"


Predicate = Union[AttributeTest, ChildTest, Position]


@dataclass(frozen=True)
class Step:
    name: Name
    predicates: tuple[Predicate, ...] = ()
    attribute: bool = False

    def render(self, namespace: str, language: str) -> str:
        if self.attribute:
            return f"@{self.name.render(namespace)}"
        predicates = "".join(p.render(namespace, language) for p in self.predicates)
        return f"{self.name.render(namespace)}{predicates}"


@dataclass(frozen=True)
class PathTemplate:
    steps: tuple[Step, ...]

    def render(self, namespace: str, language: str) -> str:
        """Return the XPath 1.0 query for *namespace* and *language*."""
        path = "/".join(step.render(namespace, language) for step in self.steps)
        return f"descendant::{path}"


def _literal(value: str, language: str) -> str:
    value = value.replace(LANGUAGE_PLACEHOLDER, language)
    if '"' in value:
        return f"'{value}'"
    return f'"{value}"'


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str) -> ValueError:
        return ValueError(f"{message} at offset {self.pos} in path template {self.text!r}")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise self.error(f"expected {char!r}")
        self.pos += 1

    def name(self) -> Name:
        match = _NAME_RE.match(self.text, self.pos)
        if not match:
            raise self.error("expected a name")
        self.pos = match.end()
        if self.peek() == ":":
            self.pos += 1
            local = _NAME_RE.match(self.text, self.pos)
            if not local:
                raise self.error("expected a local name")
            self.pos = local.end()
            return Name(local=local.group(), prefix=match.group())
        return Name(local=match.group())

    def literal(self) -> str:
        quote = self.peek()
        if quote not in ("'", '"'):
            raise self.error("expected a quoted value")
        end = self.text.find(quote, self.pos + 1)
        if end == -1:
            raise self.error("unterminated string")
        value = self.text[self.pos + 1:end]
        self.pos = end + 1
        return value

    def skip_spaces(self) -> None:
        while self.peek().isspace():
            self.pos += 1

    def predicate(self) -> Predicate:
        self.expect("[")
        self.skip_spaces()
        if self.peek() == "@":
            self.pos += 1
            name = self.name()
            self.skip_spaces()
            self.expect("=")
            self.skip_spaces()
            result: Predicate = AttributeTest(name=name, value=self.literal())
        else:
            number = _INT_RE.match(self.text, self.pos)
            if number:
                self.pos = number.end()
                result = Position(index=int(number.group()))
            else:
                path = [self.name()]
                while self.peek() == "/":
                    self.pos += 1
                    path.append(self.name())
                self.skip_spaces()
                self.expect("=")
                self.skip_spaces()
                result = ChildTest(path=tuple(path), value=self.literal())
        self.skip_spaces()
        self.expect("]")
        return result

    def step(self) -> Step:
        if self.peek() == "@":
            self.pos += 1
            return Step(name=self.name(), attribute=True)
        name = self.name()
        predicates = []
        while self.peek() == "[":
            predicates.append(self.predicate())
        return Step(name=name, predicates=tuple(predicates))

    def parse(self) -> PathTemplate:
        if self.text.startswith("/"):
            raise self.error("path templates are relative")
        steps = [self.step()]
        while self.peek() == "/":
            if steps[-1].attribute:
                raise self.error("attribute step must be last")
            self.pos += 1
            steps.append(self.step())
        if self.pos != len(self.text):
            raise self.error("unexpected character")
        return PathTemplate(steps=tuple(steps))


@lru_cache(maxsize=None)
def parse_template(text: str) -> PathTemplate:
    """Parse *text* into a :class:`PathTemplate`.

    Raises:
        ValueError: If *text* is not a valid path template.
    """
    return _Parser(text.strip()).parse()


def build_query(template: Union[PathTemplate, str], namespace: str, language: str) -> str:
    """Render *template* as a namespaced ``descendant::`` XPath query."""
    if isinstance(template, str):
        template = parse_template(template)
    return template.render(namespace, language)
