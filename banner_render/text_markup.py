"""SVG rendition of the banner text layer.

The dashboard's live preview lets the browser rasterize the text layer while
the user drags elements around; this module produces that SVG from the same
resolved ``Layout`` the raster composer uses, so both agree on anchoring,
stroke/fill order and shade opacity.
"""
from __future__ import annotations

from typing import List

from banner_layout import CANVAS, Canvas, Color, Layout, TextLayout

_MARKUP_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

GENERIC_FAMILY = "'Segoe UI', 'DejaVu Sans', Arial, sans-serif"


def escape_markup(text: object) -> str:
    """Escape text for XML content and attribute values. ``&`` goes first."""
    value = "" if text is None else str(text)
    for raw, entity in _MARKUP_ESCAPES:
        value = value.replace(raw, entity)
    return value


def css_color(color: Color) -> str:
    r, g, b, a = color
    return f"rgba({r},{g},{b},{a / 255:.3f})"


def build_text_layer_svg(
    layout: Layout,
    title: str,
    subtitle: str,
    *,
    canvas: Canvas = CANVAS,
    font_family: str = GENERIC_FAMILY,
) -> str:
    """Return a standalone SVG document with the shade and both text elements."""
    w, h = canvas.width, canvas.height
    parts: List[str] = [
        f'<svg width="{w}" height="{h}" xmlns="http://www.w3.org/2000/svg">',
        "<defs>",
        '<linearGradient id="shade" x1="0" y1="0" x2="0" y2="1">',
        '<stop offset="0%" stop-color="#000" stop-opacity="0"/>',
        f'<stop offset="100%" stop-color="#000" stop-opacity="{layout.overlay_opacity:.3f}"/>',
        "</linearGradient>",
        '<filter id="shadow" x="-20%" y="-20%" width="140%" height="140%">',
        '<feDropShadow dx="0" dy="2" stdDeviation="3" flood-color="#000" flood-opacity="0.6"/>',
        "</filter>",
        "</defs>",
        f'<rect x="0" y="0" width="{w}" height="{h}" fill="url(#shade)"/>',
        '<g filter="url(#shadow)">',
    ]
    parts.extend(_text_pair(layout.title, title, weight=700, canvas=canvas, font_family=font_family))
    parts.extend(_text_pair(layout.subtitle, subtitle, weight=400, canvas=canvas, font_family=font_family))
    parts.append("</g>")
    parts.append("</svg>")
    return "\n".join(parts)


def _text_pair(item: TextLayout, text: str, *, weight: int, canvas: Canvas, font_family: str) -> List[str]:
    anchor = "middle" if item.center else "start"
    x = item.anchor_x(canvas)
    common = (
        f'x="{x:g}" y="{item.y}" text-anchor="{anchor}" '
        f'font-family="{escape_markup(font_family)}" font-weight="{weight}" font-size="{item.size}px"'
    )
    safe = escape_markup(text)
    stroke_style = (
        f"fill: none; stroke: {css_color(item.stroke_color)}; "
        f"stroke-width: {item.stroke_width:g}; paint-order: stroke fill;"
    )
    fill_style = f"fill: {css_color(item.color)};"
    return [
        f'<text {common} style="{stroke_style}">{safe}</text>',
        f'<text {common} style="{fill_style}">{safe}</text>',
    ]


__all__ = ["build_text_layer_svg", "css_color", "escape_markup"]
