"""Render layer — render trees, the differ, and patch operations.

Turns two renderings of a component into the ordered patch list the
browser client applies.
"""

from diffyne.render.apply import apply_patches
from diffyne.render.differ import diff, diff_markup
from diffyne.render.patches import (
    Insert,
    PatchOp,
    Remove,
    RemoveAttribute,
    Reorder,
    Replace,
    ReplaceText,
    SetAttribute,
    patches_to_wire,
    summarize,
)
from diffyne.render.renderer import KidaRenderer, Renderer, render_component
from diffyne.render.tree import Document, Element, Text, parse_markup, to_html

__all__ = [
    "Document",
    "Element",
    "Insert",
    "KidaRenderer",
    "PatchOp",
    "Remove",
    "RemoveAttribute",
    "Renderer",
    "Reorder",
    "Replace",
    "ReplaceText",
    "SetAttribute",
    "Text",
    "apply_patches",
    "diff",
    "diff_markup",
    "parse_markup",
    "patches_to_wire",
    "render_component",
    "summarize",
    "to_html",
]
