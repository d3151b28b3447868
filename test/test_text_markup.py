from __future__ import annotations

import sys
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from banner_layout import resolve_layout  # noqa: E402
from banner_render.text_markup import build_text_layer_svg, css_color, escape_markup  # noqa: E402

SVG_TEXT = "{http://www.w3.org/2000/svg}text"


@pytest.mark.parametrize(
    "title",
    ["Tom & Jerry", "<script>alert(1)</script>", 'say "hi"', "it's", "&amp; already escaped", "a < b > c & 'd' \"e\""],
)
def test_markup_is_well_formed_and_keeps_text(title: str) -> None:
    svg = build_text_layer_svg(resolve_layout({}), title, "sub & <title>")

    root = ET.fromstring(svg)
    texts = [element.text for element in root.iter(SVG_TEXT)]

    assert texts == [title, title, "sub & <title>", "sub & <title>"]


def test_stroke_pass_precedes_fill_pass() -> None:
    svg = build_text_layer_svg(resolve_layout({}), "Title", "Sub")

    styles = [element.get("style") for element in ET.fromstring(svg).iter(SVG_TEXT)]

    assert styles[0].startswith("fill: none; stroke:")
    assert styles[1].startswith("fill: rgba(")
    assert styles[2].startswith("fill: none; stroke:")
    assert styles[3].startswith("fill: rgba(")


def test_anchor_follows_center_flag() -> None:
    layout = resolve_layout({"title": {"center": False, "x": 150}})

    texts = list(ET.fromstring(build_text_layer_svg(layout, "T", "S")).iter(SVG_TEXT))

    assert (texts[0].get("text-anchor"), texts[0].get("x")) == ("start", "150")
    assert (texts[2].get("text-anchor"), texts[2].get("x")) == ("middle", "600")


def test_ampersand_is_escaped_first() -> None:
    assert escape_markup("&lt;") == "&amp;lt;"
    assert escape_markup(None) == ""
    assert escape_markup("\"'") == "&quot;&apos;"


def test_css_color() -> None:
    assert css_color((0, 229, 255, 255)) == "rgba(0,229,255,1.000)"
