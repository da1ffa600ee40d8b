"""Patch operations — ordered instructions that turn one rendering into the next.

Paths are tuples of child indices from the document root and are resolved
against the tree as it stands when the patch is applied, in sequence order.
For one parent the differ emits, in this order:

    1. ``Remove`` for vanished children, highest old index first
    2. at most one ``Reorder`` of the surviving children
    3. ``Insert`` for new children, lowest new index first
    4. the patches of each surviving child, addressed by its new index

``Reorder.order`` lists the surviving children in their new order: a string
entry names a keyed child by key, an integer entry is the index of an
unkeyed child among the survivors before the reorder.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from diffyne.render.tree import Element, Node, Text, to_html

if TYPE_CHECKING:
    from diffyne._types import NodePath


def _node_to_wire(node: Node) -> dict[str, str]:
    if isinstance(node, Text):
        return {"text": node.content}
    return {"html": to_html(node)}


@dataclass(frozen=True, slots=True)
class Insert:
    parent: NodePath
    index: int
    node: Node

    op: ClassVar[str] = "insert"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "parent": list(self.parent), "index": self.index,
                **_node_to_wire(self.node)}


@dataclass(frozen=True, slots=True)
class Remove:
    path: NodePath

    op: ClassVar[str] = "remove"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "path": list(self.path)}


@dataclass(frozen=True, slots=True)
class ReplaceText:
    path: NodePath
    text: str

    op: ClassVar[str] = "replaceText"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "path": list(self.path), "text": self.text}


@dataclass(frozen=True, slots=True)
class SetAttribute:
    path: NodePath
    name: str
    value: str

    op: ClassVar[str] = "setAttribute"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "path": list(self.path), "name": self.name, "value": self.value}


@dataclass(frozen=True, slots=True)
class RemoveAttribute:
    path: NodePath
    name: str

    op: ClassVar[str] = "removeAttribute"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "path": list(self.path), "name": self.name}


@dataclass(frozen=True, slots=True)
class Reorder:
    parent: NodePath
    order: tuple[str | int, ...]

    op: ClassVar[str] = "reorder"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "parent": list(self.parent), "order": list(self.order)}


@dataclass(frozen=True, slots=True)
class Replace:
    """Swap a whole element whose behavioral directives changed."""

    path: NodePath
    node: Element

    op: ClassVar[str] = "replace"

    def to_wire(self) -> dict[str, Any]:
        return {"op": self.op, "path": list(self.path), **_node_to_wire(self.node)}


type PatchOp = Insert | Remove | ReplaceText | SetAttribute | RemoveAttribute | Reorder | Replace


def patches_to_wire(patches: Iterable[PatchOp]) -> list[dict[str, Any]]:
    return [patch.to_wire() for patch in patches]


def summarize(patches: Iterable[PatchOp]) -> dict[str, int]:
    """Count patches by operation name."""
    return dict(Counter(patch.op for patch in patches))
