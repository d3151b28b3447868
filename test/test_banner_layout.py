from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from banner_layout import (  # noqa: E402
    CANVAS,
    coerce_bool,
    layout_to_dict,
    parse_color,
    resolve_layout,
)


def test_empty_payload_uses_defaults() -> None:
    layout = resolve_layout({})

    assert layout.avatar.size == 190
    assert (layout.avatar.x, layout.avatar.y) == (80, 90)
    assert layout.title.size == 100
    assert layout.subtitle.size == 50
    assert layout.overlay_opacity == pytest.approx(0.20)
    assert (layout.title.x, layout.title.y) == (600, 205)
    assert (layout.subtitle.x, layout.subtitle.y) == (600, 265)
    assert layout.title.stroke_width == 3.0
    assert layout.subtitle.stroke_width == 2.0
    assert layout.title.center is True


def test_oversized_avatar_is_clamped() -> None:
    assert resolve_layout({"avatar": {"size": 9999}}).avatar.size == 300


def test_non_mapping_payload_falls_back_to_defaults() -> None:
    assert resolve_layout(None) == resolve_layout({})
    assert resolve_layout("not a layout") == resolve_layout({})  # type: ignore[arg-type]


@pytest.mark.parametrize("bad", [-50, float("nan"), float("inf"), None, "abc", True, 1e9])
def test_numeric_fields_stay_within_ranges(bad: object) -> None:
    text = {"x": bad, "y": bad, "size": bad, "strokeWidth": bad}
    layout = resolve_layout(
        {
            "avatar": {"size": bad, "x": bad, "y": bad},
            "title": dict(text),
            "subtitle": dict(text),
            "overlayOpacity": bad,
        }
    )

    assert 32 <= layout.avatar.size <= 300
    assert 0 <= layout.avatar.x <= CANVAS.width - layout.avatar.badge_size
    assert 0 <= layout.avatar.y <= CANVAS.height - layout.avatar.badge_size
    for item in (layout.title, layout.subtitle):
        assert 12 <= item.size <= 200
        assert 0 <= item.stroke_width <= 10
        assert 0 <= item.x <= CANVAS.width
        assert 0 <= item.y <= CANVAS.height
    assert 0 <= layout.overlay_opacity <= 0.6


def test_avatar_position_keeps_badge_on_canvas() -> None:
    layout = resolve_layout({"avatar": {"size": 300, "x": 5000, "y": 5000}})

    assert layout.avatar.badge_size == 310
    assert layout.avatar.x == CANVAS.width - 310
    assert layout.avatar.y == CANVAS.height - 310


def test_numeric_strings_and_snake_case_keys_are_accepted() -> None:
    layout = resolve_layout(
        {
            "avatar": {"size": "120"},
            "title": {"stroke_width": "4.5"},
            "overlay_opacity": "0.9",
        }
    )

    assert layout.avatar.size == 120
    assert layout.title.stroke_width == 4.5
    assert layout.overlay_opacity == 0.6


@pytest.mark.parametrize(
    "value, expected",
    [("false", False), ("0", False), ("off", False), (0, False), ("yes", True), (1, True), (None, True)],
)
def test_center_flag_coercion(value: object, expected: bool) -> None:
    assert coerce_bool(value, True) is expected


def test_parse_color_formats() -> None:
    default = (1, 2, 3, 4)

    assert parse_color("#FF000080", default) == (255, 0, 0, 128)
    assert parse_color("#fff", default) == (255, 255, 255, 255)
    assert parse_color("rgba(0, 0, 0, 0.5)", default) == (0, 0, 0, 128)
    assert parse_color("rgb(10,20,30)", default) == (10, 20, 30, 255)
    assert parse_color("red", default) == (255, 0, 0, 255)
    assert parse_color([1, 2, 3], default) == (1, 2, 3, 255)
    assert parse_color("not-a-color", default) == default
    assert parse_color(42, default) == default


def test_left_aligned_text_uses_explicit_x() -> None:
    layout = resolve_layout({"title": {"center": False, "x": 150}})

    assert layout.title.center is False
    assert layout.title.anchor_x() == 150.0
    assert layout.subtitle.anchor_x() == CANVAS.center_x


def test_layout_dict_round_trip() -> None:
    layout = resolve_layout(
        {
            "avatar": {"size": 120, "x": 40, "y": 60},
            "title": {"center": False, "x": 300, "color": "#112233", "strokeWidth": 5},
            "overlayOpacity": 0.45,
        }
    )

    assert resolve_layout(layout_to_dict(layout)) == layout
