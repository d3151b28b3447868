"""Layout resolution for banner renders.

Every render call takes a loosely structured mapping (usually straight from a
dashboard request body or a YAML file) and turns it into a frozen ``Layout``.
Missing, non-numeric and non-finite values fall back to defaults; numeric
values are clamped into their safe ranges. Resolution never raises.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from PIL import ImageColor

Color = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Canvas:
    width: int
    height: int

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def center_x(self) -> float:
        return self.width / 2


CANVAS = Canvas(1200, 400)

# The badge is the avatar plus a 5px ring on each side
RING_PADDING = 5

AVATAR_SIZE_RANGE = (32, 300)
FONT_SIZE_RANGE = (12, 200)
STROKE_WIDTH_RANGE = (0.0, 10.0)
OPACITY_RANGE = (0.0, 0.6)

DEFAULT_AVATAR_SIZE = 190
DEFAULT_AVATAR_POSITION = (80, 90)
DEFAULT_OVERLAY_OPACITY = 0.20
DEFAULT_STROKE_COLOR: Color = (0, 0, 0, 217)


@dataclass(frozen=True)
class AvatarLayout:
    size: int
    x: int
    y: int

    @property
    def badge_size(self) -> int:
        return self.size + RING_PADDING * 2


@dataclass(frozen=True)
class TextLayout:
    x: int
    y: int
    center: bool
    size: int
    color: Color
    stroke_color: Color
    stroke_width: float

    def anchor_x(self, canvas: Canvas = CANVAS) -> float:
        """Horizontal anchor: canvas midpoint when centred, otherwise the explicit x."""
        return canvas.center_x if self.center else float(self.x)


@dataclass(frozen=True)
class Layout:
    avatar: AvatarLayout
    title: TextLayout
    subtitle: TextLayout
    overlay_opacity: float


@dataclass(frozen=True)
class _TextDefaults:
    x: int
    y: int
    size: int
    color: Color
    stroke_width: float


_TITLE_DEFAULTS = _TextDefaults(x=600, y=205, size=100, color=(0, 229, 255, 255), stroke_width=3.0)
_SUBTITLE_DEFAULTS = _TextDefaults(x=600, y=265, size=50, color=(255, 209, 102, 255), stroke_width=2.0)

_FALSE_STRINGS = {"", "0", "false", "no", "off", "none", "null"}
_RGBA_PATTERN = re.compile(r"^rgba?\(\s*([^)]*)\)$", re.IGNORECASE)


def clamp_number(value: Any, default: float, minimum: float, maximum: float) -> float:
    """Bound ``value`` to [minimum, maximum]; missing or non-finite values use ``default``."""
    number = _to_number(value)
    if number is None:
        number = float(default)
    return max(minimum, min(maximum, number))


def clamp_int(value: Any, default: int, minimum: int, maximum: int) -> int:
    return int(round(clamp_number(value, default, minimum, maximum)))


def coerce_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def parse_color(value: Any, default: Color) -> Color:
    """Parse CSS-ish colour input into RGBA; anything unparseable yields ``default``."""
    if value is None:
        return default
    if isinstance(value, (list, tuple)):
        try:
            channels = [int(c) for c in value]
        except (TypeError, ValueError):
            return default
        if len(channels) == 3:
            channels.append(255)
        if len(channels) != 4:
            return default
        return tuple(max(0, min(255, c)) for c in channels)  # type: ignore[return-value]
    if not isinstance(value, str):
        return default

    text = value.strip()
    match = _RGBA_PATTERN.match(text)
    if match:
        parts = [p.strip() for p in match.group(1).split(",") if p.strip()]
        if len(parts) not in (3, 4):
            return default
        try:
            r, g, b = (max(0, min(255, int(float(parts[i])))) for i in range(3))
            alpha = 255
            if len(parts) == 4:
                raw_alpha = float(parts[3])
                alpha = int(round(raw_alpha * 255)) if 0 <= raw_alpha <= 1 else int(raw_alpha)
        except ValueError:
            return default
        return (r, g, b, max(0, min(255, alpha)))

    if text.startswith("#") and len(text) == 9:
        try:
            return tuple(int(text[i : i + 2], 16) for i in (1, 3, 5, 7))  # type: ignore[return-value]
        except ValueError:
            return default
    try:
        rgb = ImageColor.getrgb(text)
    except ValueError:
        return default
    if len(rgb) == 3:
        return (*rgb, 255)
    return rgb  # type: ignore[return-value]


def resolve_layout(raw: Optional[Mapping[str, Any]], canvas: Canvas = CANVAS) -> Layout:
    """Normalize a raw layout payload into a fully specified, clamped ``Layout``."""
    data = raw if isinstance(raw, Mapping) else {}

    avatar_raw = _section(data, "avatar")
    size = clamp_int(avatar_raw.get("size"), DEFAULT_AVATAR_SIZE, *AVATAR_SIZE_RANGE)
    badge = size + RING_PADDING * 2
    avatar = AvatarLayout(
        size=size,
        x=clamp_int(avatar_raw.get("x"), DEFAULT_AVATAR_POSITION[0], 0, max(0, canvas.width - badge)),
        y=clamp_int(avatar_raw.get("y"), DEFAULT_AVATAR_POSITION[1], 0, max(0, canvas.height - badge)),
    )

    return Layout(
        avatar=avatar,
        title=_resolve_text(_section(data, "title"), _TITLE_DEFAULTS, canvas),
        subtitle=_resolve_text(_section(data, "subtitle"), _SUBTITLE_DEFAULTS, canvas),
        overlay_opacity=clamp_number(
            data.get("overlayOpacity", data.get("overlay_opacity")),
            DEFAULT_OVERLAY_OPACITY,
            *OPACITY_RANGE,
        ),
    )


def layout_to_dict(layout: Layout) -> dict:
    """Serialize a resolved layout back into the payload shape ``resolve_layout`` accepts."""

    def text(item: TextLayout) -> dict:
        return {
            "x": item.x,
            "y": item.y,
            "center": item.center,
            "size": item.size,
            "color": _rgba_css(item.color),
            "strokeColor": _rgba_css(item.stroke_color),
            "strokeWidth": item.stroke_width,
        }

    return {
        "avatar": {"size": layout.avatar.size, "x": layout.avatar.x, "y": layout.avatar.y},
        "title": text(layout.title),
        "subtitle": text(layout.subtitle),
        "overlayOpacity": layout.overlay_opacity,
    }


# ------------------------------ helpers --------------------------------
def _resolve_text(raw: Mapping[str, Any], defaults: _TextDefaults, canvas: Canvas) -> TextLayout:
    size = clamp_int(raw.get("size"), defaults.size, *FONT_SIZE_RANGE)
    return TextLayout(
        x=clamp_int(raw.get("x"), defaults.x, 0, canvas.width),
        y=clamp_int(raw.get("y"), defaults.y, 0, canvas.height),
        center=coerce_bool(raw.get("center"), True),
        size=size,
        color=parse_color(raw.get("color"), defaults.color),
        stroke_color=parse_color(raw.get("strokeColor", raw.get("stroke_color")), DEFAULT_STROKE_COLOR),
        stroke_width=clamp_number(
            raw.get("strokeWidth", raw.get("stroke_width")),
            defaults.stroke_width,
            *STROKE_WIDTH_RANGE,
        ),
    )


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _rgba_css(color: Color) -> str:
    r, g, b, a = color
    return f"rgba({r},{g},{b},{a / 255:.3f})"


__all__ = [
    "AvatarLayout",
    "CANVAS",
    "Canvas",
    "Color",
    "Layout",
    "RING_PADDING",
    "TextLayout",
    "clamp_int",
    "clamp_number",
    "coerce_bool",
    "layout_to_dict",
    "parse_color",
    "resolve_layout",
]
