"""Render trees — frozen element/text nodes parsed from rendered markup.

All nodes are frozen dataclasses, so unchanged subtrees compare equal with
``==`` and the differ can skip them without walking.  Attributes are held
as a tuple of ``(name, value)`` pairs sorted by name: attribute order carries
no meaning in HTML, and a canonical order keeps structural equality exact.

Parsing uses the standard library HTML parser:
    - void elements (``<br>``, ``<input>``...) never take children
    - stray end tags are ignored; unclosed elements close at end of input
    - comments, doctypes and processing instructions are dropped
    - adjacent text runs are merged into one text node
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import ClassVar

from diffyne._errors import PatchError

# Attribute carrying an element's stable identity across renders
KEY_ATTRIBUTE = "diff:key"

# Attributes with this prefix carry behavioral wiring on the client
DIRECTIVE_PREFIX = "diff:"

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

type Attrs = tuple[tuple[str, str], ...]


@dataclass(frozen=True, slots=True)
class Text:
    """A text leaf."""

    content: str

    tag: ClassVar[str] = "#text"


@dataclass(frozen=True, slots=True)
class Element:
    """An element node.

    Attributes:
        tag: Lowercase tag name.
        attrs: ``(name, value)`` pairs, sorted by name, names unique.
        children: Child nodes in document order.

    """

    tag: str
    attrs: Attrs = ()
    children: tuple[Node, ...] = ()

    def __post_init__(self) -> None:
        seen: dict[str, str] = {}
        for name, value in self.attrs:
            seen.setdefault(name, value)
        object.__setattr__(self, "attrs", tuple(sorted(seen.items())))

    @property
    def key(self) -> str | None:
        """The author-supplied stable key, if any."""
        return self.get(KEY_ATTRIBUTE)

    @property
    def attributes(self) -> dict[str, str]:
        return dict(self.attrs)

    @property
    def directives(self) -> Attrs:
        """Behavioral directive attributes (``diff:*`` except the key)."""
        return tuple(
            (name, value) for name, value in self.attrs
            if name.startswith(DIRECTIVE_PREFIX) and name != KEY_ATTRIBUTE
        )

    def get(self, name: str, default: str | None = None) -> str | None:
        for attr, value in self.attrs:
            if attr == name:
                return value
        return default


type Node = Element | Text


@dataclass(frozen=True, slots=True)
class Document:
    """Root of a render tree: the top-level nodes of one rendering."""

    children: tuple[Node, ...] = field(default=())

    def __len__(self) -> int:
        return len(self.children)


def node_at(document: Document, path: tuple[int, ...]) -> Node:
    """Resolve a child-index path from the document root.

    Raises:
        PatchError: If the path does not address a node.

    """
    if not path:
        msg = "the empty path addresses the document, not a node"
        raise PatchError(msg)
    children = document.children
    node: Node | None = None
    for depth, index in enumerate(path):
        if not 0 <= index < len(children):
            msg = f"no node at {path!r} (failed at depth {depth})"
            raise PatchError(msg)
        node = children[index]
        children = node.children if isinstance(node, Element) else ()
    assert node is not None
    return node


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class _TreeBuilder(HTMLParser):
    """Builds a :class:`Document` from markup."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        # Open elements: (tag, attrs, children)
        self._stack: list[tuple[str, Attrs, list[Node]]] = [("#document", (), [])]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        pairs = tuple((name, value if value is not None else "") for name, value in attrs)
        if tag in VOID_ELEMENTS:
            self._append(Element(tag=tag, attrs=pairs))
            return
        self._stack.append((tag, pairs, []))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        pairs = tuple((name, value if value is not None else "") for name, value in attrs)
        self._append(Element(tag=tag, attrs=pairs))

    def handle_endtag(self, tag: str) -> None:
        if tag in VOID_ELEMENTS:
            return
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth][0] == tag:
                while len(self._stack) > depth:
                    self._close_top()
                return

    def handle_data(self, data: str) -> None:
        if data:
            self._append(Text(data))

    def _append(self, node: Node) -> None:
        children = self._stack[-1][2]
        if isinstance(node, Text) and children and isinstance(children[-1], Text):
            children[-1] = Text(children[-1].content + node.content)
            return
        children.append(node)

    def _close_top(self) -> None:
        tag, attrs, children = self._stack.pop()
        self._append(Element(tag=tag, attrs=attrs, children=tuple(children)))

    def document(self) -> Document:
        self.close()
        while len(self._stack) > 1:
            self._close_top()
        return Document(children=tuple(self._stack[0][2]))


def parse_markup(markup: str) -> Document:
    """Parse rendered markup into a :class:`Document`."""
    builder = _TreeBuilder()
    builder.feed(markup)
    return builder.document()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def to_html(node: Node | Document) -> str:
    """Serialize a node or document back to markup."""
    parts: list[str] = []
    if isinstance(node, Document):
        for child in node.children:
            _write(child, parts, raw=False)
    else:
        _write(node, parts, raw=False)
    return "".join(parts)


def _write(node: Node, parts: list[str], *, raw: bool) -> None:
    if isinstance(node, Text):
        parts.append(node.content if raw else html.escape(node.content, quote=False))
        return

    parts.append(f"<{node.tag}")
    for name, value in node.attrs:
        parts.append(f' {name}="{html.escape(value, quote=True)}"')
    parts.append(">")
    if node.tag in VOID_ELEMENTS:
        return
    child_raw = node.tag in RAW_TEXT_ELEMENTS
    for child in node.children:
        _write(child, parts, raw=child_raw)
    parts.append(f"</{node.tag}>")
