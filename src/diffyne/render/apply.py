"""Reference patch applier.

Applies a patch sequence to a render tree with the same semantics as the
browser client.  Used to check the diff round-trip law
``apply_patches(old, diff(old, new)) == new`` in tests, and by the pipeline
when ``verify_patches`` is enabled.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from diffyne._errors import PatchError
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
from diffyne.render.tree import KEY_ATTRIBUTE, Document, Element, Node, Text

if TYPE_CHECKING:
    from diffyne._types import NodePath


class _Mutable:
    __slots__ = ("attrs", "children", "content", "tag")

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str] | None = None,
        children: list[_Mutable] | None = None,
        content: str = "",
    ) -> None:
        self.tag = tag
        self.attrs = attrs or {}
        self.children = children or []
        self.content = content


def _thaw(node: Node) -> _Mutable:
    if isinstance(node, Text):
        return _Mutable(Text.tag, content=node.content)
    return _Mutable(node.tag, dict(node.attrs), [_thaw(child) for child in node.children])


def _freeze(node: _Mutable) -> Node:
    if node.tag == Text.tag:
        return Text(node.content)
    return Element(
        tag=node.tag,
        attrs=tuple(node.attrs.items()),
        children=tuple(_freeze(child) for child in node.children),
    )


def _resolve(root: _Mutable, path: NodePath) -> _Mutable:
    node = root
    for index in path:
        if not 0 <= index < len(node.children):
            msg = f"no node at {path!r}"
            raise PatchError(msg)
        node = node.children[index]
    return node


def _element(root: _Mutable, path: NodePath) -> _Mutable:
    node = _resolve(root, path)
    if node.tag == Text.tag or node is root:
        msg = f"{path!r} does not address an element"
        raise PatchError(msg)
    return node


def apply_patches(document: Document, patches: Iterable[PatchOp]) -> Document:
    """Apply *patches* in order and return the resulting document.

    Raises:
        PatchError: If a patch addresses a node that does not exist, or a
            reorder does not name exactly the current children.

    """
    root = _Mutable("#document", children=[_thaw(child) for child in document.children])

    for patch in patches:
        match patch:
            case Remove(path=path):
                if not path:
                    msg = "cannot remove the document"
                    raise PatchError(msg)
                parent = _resolve(root, path[:-1])
                if not 0 <= path[-1] < len(parent.children):
                    msg = f"no node at {path!r}"
                    raise PatchError(msg)
                del parent.children[path[-1]]
            case Insert(parent=parent_path, index=index, node=node):
                parent = _resolve(root, parent_path)
                if parent.tag == Text.tag or not 0 <= index <= len(parent.children):
                    msg = f"cannot insert at {(*parent_path, index)!r}"
                    raise PatchError(msg)
                parent.children.insert(index, _thaw(node))
            case Reorder(parent=parent_path, order=order):
                parent = _resolve(root, parent_path)
                parent.children = _reordered(parent.children, order, parent_path)
            case ReplaceText(path=path, text=text):
                node = _resolve(root, path)
                if node.tag != Text.tag:
                    msg = f"{path!r} does not address a text node"
                    raise PatchError(msg)
                node.content = text
            case SetAttribute(path=path, name=name, value=value):
                _element(root, path).attrs[name] = value
            case RemoveAttribute(path=path, name=name):
                _element(root, path).attrs.pop(name, None)
            case Replace(path=path, node=node):
                if not path:
                    msg = "cannot replace the document"
                    raise PatchError(msg)
                parent = _resolve(root, path[:-1])
                _resolve(root, path)
                parent.children[path[-1]] = _thaw(node)
            case _:
                msg = f"unknown patch {patch!r}"
                raise PatchError(msg)

    return Document(children=tuple(_freeze(child) for child in root.children))


def _reordered(
    children: list[_Mutable],
    order: tuple[str | int, ...],
    parent_path: NodePath,
) -> list[_Mutable]:
    if len(order) != len(children):
        msg = f"reorder of {parent_path!r} names {len(order)} of {len(children)} children"
        raise PatchError(msg)

    by_key = {
        child.attrs[KEY_ATTRIBUTE]: child
        for child in children
        if child.tag != Text.tag and KEY_ATTRIBUTE in child.attrs
    }
    result: list[_Mutable] = []
    for entry in order:
        if isinstance(entry, str):
            child = by_key.get(entry)
        elif 0 <= entry < len(children):
            child = children[entry]
        else:
            child = None
        if child is None:
            msg = f"reorder of {parent_path!r}: unknown entry {entry!r}"
            raise PatchError(msg)
        result.append(child)

    if len({id(child) for child in result}) != len(children):
        msg = f"reorder of {parent_path!r} is not a permutation"
        raise PatchError(msg)
    return result
