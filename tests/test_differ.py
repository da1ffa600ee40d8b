"""Tests for diffyne.render.differ — keyed structural diffing."""

from __future__ import annotations

import random

from diffyne.render.apply import apply_patches
from diffyne.render.differ import diff, diff_markup
from diffyne.render.patches import (
    Insert,
    Remove,
    RemoveAttribute,
    Reorder,
    Replace,
    ReplaceText,
    SetAttribute,
)
from diffyne.render.tree import KEY_ATTRIBUTE, Document, Element, Node, Text, parse_markup

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_TAGS = ("div", "p", "span", "li")
_WORDS = ("alpha", "beta", "gamma", "delta", " ")


def _ul(*keys: str) -> str:
    return "<ul>" + "".join(f'<li diff:key="{k}">{k}</li>' for k in keys) + "</ul>"


def _random_node(rng: random.Random, depth: int) -> Node:
    if depth <= 0 or rng.random() < 0.3:
        return Text(rng.choice(_WORDS))
    attrs: list[tuple[str, str]] = []
    if rng.random() < 0.5:
        attrs.append(("class", rng.choice("abc")))
    if rng.random() < 0.2:
        attrs.append(("diff:click", rng.choice(("save", "load"))))
    if rng.random() < 0.4:
        attrs.append((KEY_ATTRIBUTE, str(rng.randint(1, 6))))
    children = tuple(_random_node(rng, depth - 1) for _ in range(rng.randint(0, 4)))
    return Element(rng.choice(_TAGS), tuple(attrs), children)


def _perturb(rng: random.Random, node: Node, depth: int) -> Node:
    if isinstance(node, Text):
        return Text(node.content + "!") if rng.random() < 0.3 else node
    children = [_perturb(rng, child, depth - 1) for child in node.children]
    roll = rng.random()
    if roll < 0.3:
        rng.shuffle(children)
    elif roll < 0.45 and children:
        del children[rng.randrange(len(children))]
    elif roll < 0.6:
        children.insert(rng.randint(0, len(children)), _random_node(rng, depth - 1))
    attrs = list(node.attrs)
    if rng.random() < 0.2:
        attrs = [(n, v + "x") if n == "class" else (n, v) for n, v in attrs]
    if rng.random() < 0.1:
        attrs = [(n, v) for n, v in attrs if n != "diff:click"] + [("diff:click", "other")]
    if rng.random() < 0.1:
        attrs.append(("title", "t"))
    return Element(node.tag, tuple(attrs), tuple(children))


def _random_document(rng: random.Random) -> Document:
    return Document(tuple(_random_node(rng, 3) for _ in range(rng.randint(0, 4))))


# ---------------------------------------------------------------------------
# Laws
# ---------------------------------------------------------------------------


class TestDiffLaws:
    """Properties that hold for every pair of trees."""

    def test_identical_is_empty(self) -> None:
        rng = random.Random(7)
        for _ in range(100):
            doc = _random_document(rng)
            assert diff(doc, doc) == ()

    def test_equal_but_distinct_trees_are_empty(self) -> None:
        markup = '<div class="x"><ul><li diff:key="1">a</li></ul></div>'
        assert diff_markup(markup, markup) == ()

    def test_apply_reproduces_new_for_independent_trees(self) -> None:
        rng = random.Random(2024)
        for _ in range(300):
            old, new = _random_document(rng), _random_document(rng)
            assert apply_patches(old, diff(old, new)) == new

    def test_apply_reproduces_new_for_perturbed_trees(self) -> None:
        rng = random.Random(31337)
        for _ in range(300):
            old = _random_document(rng)
            new = Document(tuple(_perturb(rng, child, 3) for child in old.children))
            patches = diff(old, new)
            applied = apply_patches(old, patches)
            assert applied == new
            assert diff(applied, new) == ()


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestKeyedLists:
    def test_reorder_only(self) -> None:
        patches = diff_markup(_ul("a", "b", "c"), _ul("c", "a", "b"))
        assert patches == (Reorder((0,), ("c", "a", "b")),)

    def test_prepend_keeps_identity(self) -> None:
        patches = diff_markup(_ul("a", "b"), _ul("z", "a", "b"))
        assert len(patches) == 1
        assert isinstance(patches[0], Insert)
        assert patches[0].parent == (0,)
        assert patches[0].index == 0

    def test_remove_middle(self) -> None:
        assert diff_markup(_ul("a", "b", "c"), _ul("a", "c")) == (Remove((0, 1)),)

    def test_removes_descending_then_inserts_ascending(self) -> None:
        patches = diff_markup(_ul("a", "b", "c", "d"), _ul("x", "b", "y", "d"))
        assert [type(p) for p in patches] == [Remove, Remove, Insert, Insert]
        assert [p.path for p in patches[:2]] == [(0, 2), (0, 0)]  # type: ignore[union-attr]
        assert [p.index for p in patches[2:]] == [0, 2]  # type: ignore[union-attr]

    def test_moved_item_content_patched_at_new_index(self) -> None:
        old = '<ul><li diff:key="a">A</li><li diff:key="b">B</li></ul>'
        new = '<ul><li diff:key="b">B2</li><li diff:key="a">A</li></ul>'
        patches = diff_markup(old, new)
        assert patches == (Reorder((0,), ("b", "a")), ReplaceText((0, 0, 0), "B2"))

    def test_duplicate_keys_never_match(self) -> None:
        old = parse_markup('<ul><li diff:key="x">1</li><li diff:key="x">2</li></ul>')
        new = parse_markup('<ul><li diff:key="x">1</li></ul>')
        patches = diff(old, new)
        assert [type(p) for p in patches] == [Remove, Remove, Insert]
        assert apply_patches(old, patches) == new

    def test_key_reused_with_other_tag(self) -> None:
        old = parse_markup('<div><p diff:key="a">x</p></div>')
        new = parse_markup('<div><section diff:key="a">x</section></div>')
        patches = diff(old, new)
        assert [type(p) for p in patches] == [Remove, Insert]
        assert apply_patches(old, patches) == new

    def test_mixed_keyed_and_unkeyed_reorder(self) -> None:
        old = Document((Text("x"), Element("li", ((KEY_ATTRIBUTE, "a"),))))
        new = Document((Element("li", ((KEY_ATTRIBUTE, "a"),)), Text("x")))
        patches = diff(old, new)
        assert patches == (Reorder((), ("a", 0)),)
        assert apply_patches(old, patches) == new


class TestNodeChanges:
    def test_text_change(self) -> None:
        assert diff_markup("<p>Page 1</p>", "<p>Page 2</p>") == (ReplaceText((0, 0), "Page 2"),)

    def test_attribute_set_and_remove(self) -> None:
        patches = diff_markup('<a class="x" title="t">go</a>', '<a class="y" href="/">go</a>')
        assert patches == (
            SetAttribute((0,), "class", "y"),
            SetAttribute((0,), "href", "/"),
            RemoveAttribute((0,), "title"),
        )

    def test_attributes_before_children(self) -> None:
        patches = diff_markup('<p class="a">1</p>', '<p class="b">2</p>')
        assert [type(p) for p in patches] == [SetAttribute, ReplaceText]

    def test_directive_change_replaces(self) -> None:
        new = '<button diff:click="load" class="b">Go</button>'
        patches = diff_markup('<button diff:click="save" class="b">Go</button>', new)
        assert patches == (Replace((0,), parse_markup(new).children[0]),)  # type: ignore[arg-type]

    def test_directive_added_replaces(self) -> None:
        patches = diff_markup("<button>Go</button>", '<button diff:click="go">Go</button>')
        assert [type(p) for p in patches] == [Replace]

    def test_unkeyed_tag_mismatch_is_remove_insert(self) -> None:
        patches = diff_markup("<p>a</p><span>b</span>", "<span>b</span>")
        assert [type(p) for p in patches] == [Remove, Remove, Insert]

    def test_unchanged_subtree_skipped(self) -> None:
        old = '<div><section><p>same</p></section><p>1</p></div>'
        new = '<div><section><p>same</p></section><p>2</p></div>'
        assert diff_markup(old, new) == (ReplaceText((0, 1, 0), "2"),)


class TestEmptyDocuments:
    def test_empty_old(self) -> None:
        patches = diff_markup("", "<p>a</p><p>b</p>")
        assert [(type(p), p.index) for p in patches] == [(Insert, 0), (Insert, 1)]  # type: ignore[union-attr]

    def test_empty_new(self) -> None:
        assert diff_markup("<p>a</p><p>b</p>", "") == (Remove((1,)), Remove((0,)))

    def test_both_empty(self) -> None:
        assert diff(Document(), Document()) == ()
