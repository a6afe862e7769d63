"""Tests for the SVG document arena."""

from __future__ import annotations

import pytest

from vectorforge.errors import SvgParseError
from vectorforge.svg.document import SvgDocument, format_number, parse_length

SIMPLE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<svg xmlns="http://www.w3.org/2000/svg" '
    'xmlns:xlink="http://www.w3.org/1999/xlink" viewBox="0 0 100 50">'
    '<g id="outer"><rect width="10" height="10" fill="red"/>'
    '<use xlink:href="#a"/></g>'
    "<title>A &amp; B</title>"
    "</svg>"
)


class TestParse:
    def test_tags_and_structure(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        root = doc.nodes[doc.root]
        assert root.tag == "svg"
        assert [doc.nodes[i].tag for i in doc.iter()] == [
            "svg",
            "g",
            "rect",
            "use",
            "title",
        ]
        assert doc.has_declaration

    def test_namespaces_collected(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        assert doc.namespaces == {
            "": "http://www.w3.org/2000/svg",
            "xlink": "http://www.w3.org/1999/xlink",
        }

    def test_prefixed_attributes_keep_prefix(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        use = doc.find_all("use")[0]
        assert doc.nodes[use].attrs == {"xlink:href": "#a"}

    def test_text_content_unescaped(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        title = doc.find_all("title")[0]
        assert doc.nodes[title].text == "A & B"

    def test_parent_links(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        rect = doc.find_all("rect")[0]
        group = doc.find_all("g")[0]
        assert doc.nodes[rect].parent == group
        assert list(doc.ancestors(rect)) == [group, doc.root]

    @pytest.mark.parametrize("markup", ["<svg><g></svg>", "not xml at all", ""])
    def test_malformed_markup(self, markup: str) -> None:
        with pytest.raises(SvgParseError, match="Malformed SVG"):
            SvgDocument.parse(markup)

    def test_root_must_be_svg(self) -> None:
        with pytest.raises(SvgParseError, match="got <html>"):
            SvgDocument.parse("<html><body/></html>")


class TestMutation:
    def test_remove_detaches_subtree(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        group = doc.find_all("g")[0]
        doc.remove(group)
        assert doc.find_all("rect") == []
        assert doc.nodes[group].removed
        # Indices stay valid after removal.
        assert doc.nodes[group].tag == "g"

    def test_root_cannot_be_removed(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        with pytest.raises(ValueError, match="root"):
            doc.remove(doc.root)

    def test_add_and_move(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        circle = doc.add_node("circle", {"r": "2"}, parent=doc.root, position=0)
        assert doc.live_children(doc.root)[0] == circle

        group = doc.find_all("g")[0]
        doc.move(circle, group)
        assert doc.live_children(group)[-1] == circle
        assert doc.nodes[circle].parent == group

    def test_replace_with(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        group = doc.find_all("g")[0]
        rect = doc.find_all("rect")[0]
        doc.replace_with(group, rect)
        assert doc.live_children(doc.root)[0] == rect
        assert doc.nodes[rect].parent == doc.root
        assert doc.find_all("use") == []


class TestViewBox:
    @pytest.mark.parametrize(
        ("attrs", "expected"),
        [
            ('viewBox="0 0 100 50"', (0.0, 0.0, 100.0, 50.0)),
            ('viewBox="-5,-5, 10,20"', (-5.0, -5.0, 10.0, 20.0)),
            ('width="64" height="32px"', (0.0, 0.0, 64.0, 32.0)),
            ('width="100%" height="100%"', None),
            ('viewBox="0 0 0 10"', None),
            ('viewBox="a b c d"', None),
            ("", None),
        ],
    )
    def test_view_box(self, attrs: str, expected) -> None:
        doc = SvgDocument.parse(f"<svg {attrs}/>")
        assert doc.view_box() == expected


class TestSerialize:
    def test_round_trip_structure(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        out = doc.serialize()
        assert out.splitlines()[0] == '<?xml version="1.0" encoding="UTF-8"?>'
        assert (
            '<svg xmlns="http://www.w3.org/2000/svg" '
            'xmlns:xlink="http://www.w3.org/1999/xlink" viewBox="0 0 100 50">'
        ) in out
        assert '    <rect width="10" height="10" fill="red" />' in out
        assert '    <use xlink:href="#a" />' in out
        assert "  <title>A &amp; B</title>" in out
        assert out.endswith("</svg>")

        reparsed = SvgDocument.parse(out)
        assert [reparsed.nodes[i].tag for i in reparsed.iter()] == [
            doc.nodes[i].tag for i in doc.iter()
        ]

    def test_no_declaration_when_absent(self) -> None:
        out = SvgDocument.parse('<svg xmlns="http://www.w3.org/2000/svg"/>').serialize()
        assert out == '<svg xmlns="http://www.w3.org/2000/svg" />'

    def test_removed_nodes_not_written(self) -> None:
        doc = SvgDocument.parse(SIMPLE)
        doc.remove(doc.find_all("rect")[0])
        assert "<rect" not in doc.serialize()

    def test_attribute_values_escaped(self) -> None:
        doc = SvgDocument.parse("<svg/>")
        doc.add_node("text", {"data-x": 'a<"b'}, parent=doc.root)
        assert "data-x='a&lt;\"b'" in doc.serialize()


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(10.0, "10"), (2.5, "2.5"), (1 / 3, "0.3333"), (-0.00001, "0"), (0, "0")],
    )
    def test_format_number(self, value: float, expected: str) -> None:
        assert format_number(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("12", 12.0), ("12px", 12.0), ("50%", 100.0), ("1e2", 100.0), ("3em", None)],
    )
    def test_parse_length(self, value: str, expected: float | None) -> None:
        assert parse_length(value, 200.0) == expected

    def test_parse_length_missing(self) -> None:
        assert parse_length(None, 10.0) is None
