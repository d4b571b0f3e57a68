"""Render arbitrary JSON values as nested HTML list markup.

Values are converted once into a small tagged variant (null, scalar,
sequence, mapping) and rendered from it. Both steps walk an explicit stack,
so nesting depth is bounded only by the input. Every leaf string and every
mapping key is HTML-escaped, since API payloads are untrusted.
"""

import html
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

NULL_MARKER = '<span class="null">null</span>'


def escape(text: str) -> str:
    """Escape &, <, >, " and ' for embedding in markup."""
    return html.escape(text, quote=True)


# Each node lists its output as markup strings and child nodes still to expand.


@dataclass(frozen=True)
class NullNode:
    def parts(self) -> Sequence["str | Node"]:
        return (NULL_MARKER,)

    def render(self) -> str:
        return render_node(self)


@dataclass(frozen=True)
class ScalarNode:
    text: str

    def parts(self) -> Sequence["str | Node"]:
        return (escape(self.text),)

    def render(self) -> str:
        return render_node(self)


@dataclass(frozen=True)
class ListNode:
    items: tuple["Node", ...]

    def parts(self) -> Sequence["str | Node"]:
        parts: list[str | Node] = ["<ul>"]
        for item in self.items:
            parts += ["<li>", item, "</li>"]
        parts.append("</ul>")
        return parts

    def render(self) -> str:
        return render_node(self)


@dataclass(frozen=True)
class MapNode:
    entries: tuple[tuple[str, "Node"], ...]

    def parts(self) -> Sequence["str | Node"]:
        parts: list[str | Node] = ["<ul>"]
        for key, value in self.entries:
            parts += [f"<li><strong>{escape(key)}:</strong> ", value, "</li>"]
        parts.append("</ul>")
        return parts

    def render(self) -> str:
        return render_node(self)


Node = NullNode | ScalarNode | ListNode | MapNode


def _number_text(value: float) -> str:
    """Spell a float the way JavaScript's String() does."""
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), "f")
    mantissa, exponent = text.split("e")
    sign = "-" if exponent.startswith("-") else "+"
    return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0')}"


def _scalar_text(value: Any) -> str:
    # JSON spelling for booleans
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _number_text(value)
    return str(value)


_VISIT, _BUILD_LIST, _BUILD_MAP = range(3)


def to_node(value: Any) -> Node:
    """Convert a parsed JSON value into its tagged node."""
    built: list[Node] = []
    stack: list[tuple] = [(_VISIT, value, built)]
    while stack:
        task = stack.pop()
        if task[0] == _BUILD_LIST:
            _, children, sink = task
            sink.append(ListNode(tuple(children)))
        elif task[0] == _BUILD_MAP:
            _, keys, children, sink = task
            sink.append(MapNode(tuple(zip(keys, children))))
        else:
            _, current, sink = task
            if current is None:
                sink.append(NullNode())
            elif isinstance(current, dict):
                children: list[Node] = []
                stack.append((_BUILD_MAP, [str(k) for k in current], children, sink))
                # Reversed so children are built in order
                stack.extend((_VISIT, v, children) for v in reversed(list(current.values())))
            elif isinstance(current, (list, tuple)):
                children = []
                stack.append((_BUILD_LIST, children, sink))
                stack.extend((_VISIT, item, children) for item in reversed(current))
            else:
                sink.append(ScalarNode(_scalar_text(current)))
    return built[0]


def render_node(node: Node) -> str:
    """Expand a node tree into markup."""
    out: list[str] = []
    stack: list[str | Node] = [node]
    while stack:
        part = stack.pop()
        if isinstance(part, str):
            out.append(part)
        else:
            stack.extend(reversed(part.parts()))
    return "".join(out)


def render(value: Any = None) -> str:
    """Render a JSON value (or nothing at all) as an HTML string."""
    return render_node(to_node(value))
