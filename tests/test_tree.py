"""Tests for diffyne.render.tree — parsing and serialization."""

from __future__ import annotations

import pytest

from diffyne._errors import PatchError
from diffyne.render.tree import (
    KEY_ATTRIBUTE,
    Document,
    Element,
    Text,
    node_at,
    parse_markup,
    to_html,
)


class TestElement:
    def test_attrs_sorted_and_deduplicated(self) -> None:
        el = Element("a", (("href", "/x"), ("class", "btn"), ("href", "/y")))
        assert el.attrs == (("class", "btn"), ("href", "/x"))

    def test_attribute_order_irrelevant(self) -> None:
        assert Element("a", (("x", "1"), ("y", "2"))) == Element("a", (("y", "2"), ("x", "1")))

    def test_key(self) -> None:
        assert Element("li", ((KEY_ATTRIBUTE, "7"),)).key == "7"
        assert Element("li").key is None

    def test_directives_exclude_key(self) -> None:
        el = Element("button", (("diff:click", "save"), (KEY_ATTRIBUTE, "k"), ("id", "b")))
        assert el.directives == (("diff:click", "save"),)

    def test_text_tag(self) -> None:
        assert Text("hi").tag == "#text"


class TestParseMarkup:
    """parse_markup — tolerant HTML to frozen tree."""

    def test_nested(self) -> None:
        doc = parse_markup('<div class="a"><p>Hi <b>there</b></p></div>')
        assert doc == Document((
            Element("div", (("class", "a"),), (
                Element("p", (), (Text("Hi "), Element("b", (), (Text("there"),)))),
            )),
        ))

    def test_void_elements(self) -> None:
        doc = parse_markup('<p><input name="q"><br>text</p>')
        p = doc.children[0]
        assert isinstance(p, Element)
        assert [c.tag for c in p.children] == ["input", "br", "#text"]

    def test_self_closing(self) -> None:
        doc = parse_markup("<div><span/>x</div>")
        assert doc.children[0].children[0] == Element("span")  # type: ignore[union-attr]

    def test_comments_dropped_and_text_merged(self) -> None:
        doc = parse_markup("<p>a<!-- hidden -->b</p>")
        assert doc.children[0].children == (Text("ab"),)  # type: ignore[union-attr]

    def test_entities_decoded(self) -> None:
        doc = parse_markup("<p>&lt;b&gt; &amp; co</p>")
        assert doc.children[0].children == (Text("<b> & co"),)  # type: ignore[union-attr]

    def test_valueless_attribute(self) -> None:
        doc = parse_markup("<input disabled>")
        assert doc.children[0].attrs == (("disabled", ""),)  # type: ignore[union-attr]

    def test_stray_end_tag_ignored(self) -> None:
        assert parse_markup("<p>a</span></p>") == parse_markup("<p>a</p>")

    def test_unclosed_closes_at_end(self) -> None:
        doc = parse_markup("<ul><li>a<li>b")
        assert len(doc) == 1

    def test_whitespace_text_kept(self) -> None:
        doc = parse_markup("<ul>\n  <li>a</li>\n</ul>")
        assert [c.tag for c in doc.children[0].children] == ["#text", "li", "#text"]  # type: ignore[union-attr]

    def test_empty(self) -> None:
        assert parse_markup("") == Document()


class TestToHtml:
    def test_round_trip(self) -> None:
        markup = '<div class="a" id="b"><p>x &amp; y</p><br><input name="q"></div>'
        assert to_html(parse_markup(markup)) == markup

    def test_attribute_escaping(self) -> None:
        el = Element("a", (("title", 'say "hi" & <go>'),))
        assert to_html(el) == '<a title="say &quot;hi&quot; &amp; &lt;go&gt;"></a>'

    def test_raw_text_not_escaped(self) -> None:
        doc = parse_markup("<script>if (a < b) {}</script>")
        assert to_html(doc) == "<script>if (a < b) {}</script>"

    def test_reparse_is_stable(self) -> None:
        doc = parse_markup("<ul><li diff:key='1'>one</li><li>two &lt;3</li></ul>")
        assert parse_markup(to_html(doc)) == doc


class TestNodeAt:
    def test_resolves(self) -> None:
        doc = parse_markup("<div><p>a</p><p>b</p></div>")
        assert node_at(doc, (0, 1, 0)) == Text("b")

    @pytest.mark.parametrize("path", [(), (1,), (0, 5), (0, 0, 0, 0)])
    def test_invalid(self, path: tuple[int, ...]) -> None:
        doc = parse_markup("<div><p>a</p></div>")
        with pytest.raises(PatchError):
            node_at(doc, path)
