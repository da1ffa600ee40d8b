"""Render differ — key-matched structural diff of two render trees.

Compares the previous rendering of a component with the new one and emits
an ordered patch list (see :mod:`diffyne.render.patches` for the addressing
rules).  Unchanged subtrees are skipped in O(1) via ``==`` on frozen nodes.

Matching, per sibling list:
    1. Children with a ``diff:key`` attribute form the keyed group; all other
       children (text included) form the unkeyed group.
    2. Keyed children match by identical key and tag.  A key that appears
       more than once in one sibling list never matches, and a key reused
       with a different tag is a non-match, so both sides fall through to
       remove + insert.
    3. Unkeyed children match by position within the unkeyed group when
       their tags agree (text nodes use the tag ``#text``); a tag mismatch
       at a position is a remove + insert.
    4. Matched elements are compared attribute by attribute.  A change in
       any behavioral directive (``diff:*`` other than the key) replaces the
       whole element instead, since directives wire client behavior that
       must be re-established.  Matched text nodes compare by content.
    5. When the surviving children changed relative order, one ``Reorder``
       is emitted for the parent instead of per-child moves.

This is a two-pass map join per sibling list, not a tree edit distance:
keyed items moved around a list keep their identity and are never
removed and reinserted.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import TYPE_CHECKING

from diffyne.render.patches import (
    Insert,
    PatchOp,
    Remove,
    RemoveAttribute,
    Reorder,
    Replace,
    ReplaceText,
    SetAttribute,
)
from diffyne.render.tree import Document, Element, Node, Text, parse_markup

if TYPE_CHECKING:
    from diffyne._types import NodePath


def diff(old: Document, new: Document) -> tuple[PatchOp, ...]:
    """Ordered patches that turn *old* into *new*.

    ``diff(t, t)`` is always empty.  An empty *old* yields one ``Insert`` per
    top-level node of *new*; an empty *new* yields one ``Remove`` per
    top-level node of *old*.

    """
    patches: list[PatchOp] = []
    if old != new:
        _diff_children(old.children, new.children, (), patches)
    return tuple(patches)


def diff_markup(old_markup: str, new_markup: str) -> tuple[PatchOp, ...]:
    """Parse both renderings and diff them."""
    return diff(parse_markup(old_markup), parse_markup(new_markup))


def _key(node: Node) -> str | None:
    return node.key if isinstance(node, Element) else None


def _unique_keys(children: Sequence[Node]) -> dict[str, int]:
    """Key -> index for keys that occur exactly once."""
    counts = Counter(k for k in map(_key, children) if k is not None)
    return {
        key: index for index, child in enumerate(children)
        if (key := _key(child)) is not None and counts[key] == 1
    }


def _match(old: Sequence[Node], new: Sequence[Node]) -> dict[int, int]:
    """Map new child index -> matched old child index."""
    matches: dict[int, int] = {}

    old_keys = _unique_keys(old)
    for key, j in _unique_keys(new).items():
        i = old_keys.get(key)
        if i is not None and old[i].tag == new[j].tag:
            matches[j] = i

    old_unkeyed = [i for i, child in enumerate(old) if _key(child) is None]
    new_unkeyed = [j for j, child in enumerate(new) if _key(child) is None]
    for i, j in zip(old_unkeyed, new_unkeyed, strict=False):
        if old[i].tag == new[j].tag:
            matches[j] = i

    return matches


def _diff_children(
    old: Sequence[Node],
    new: Sequence[Node],
    parent: NodePath,
    patches: list[PatchOp],
) -> None:
    matches = _match(old, new)
    matched_old = set(matches.values())

    for i in range(len(old) - 1, -1, -1):
        if i not in matched_old:
            patches.append(Remove((*parent, i)))

    survivors = [i for i in range(len(old)) if i in matched_old]
    new_order = [matches[j] for j in range(len(new)) if j in matches]
    if new_order != survivors:
        position = {i: p for p, i in enumerate(survivors)}
        order = tuple(
            key if (key := _key(old[i])) is not None else position[i]
            for i in new_order
        )
        patches.append(Reorder(parent, order))

    for j, child in enumerate(new):
        if j not in matches:
            patches.append(Insert(parent, j, child))

    for j in sorted(matches):
        _diff_node(old[matches[j]], new[j], (*parent, j), patches)


def _diff_node(old: Node, new: Node, path: NodePath, patches: list[PatchOp]) -> None:
    if old == new:
        return

    if isinstance(old, Text) or isinstance(new, Text):
        patches.append(ReplaceText(path, new.content))  # type: ignore[union-attr]
        return

    if old.directives != new.directives:
        patches.append(Replace(path, new))
        return

    old_attrs = old.attributes
    new_attrs = new.attributes
    for name, value in new.attrs:
        if old_attrs.get(name) != value:
            patches.append(SetAttribute(path, name, value))
    for name, _value in old.attrs:
        if name not in new_attrs:
            patches.append(RemoveAttribute(path, name))

    if old.children != new.children:
        _diff_children(old.children, new.children, path, patches)
