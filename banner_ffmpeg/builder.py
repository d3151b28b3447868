"""Banner filter graph: background normalization, overlay, shade, text, palette."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional, Union

from banner_errors import MissingBackgroundError
from banner_layout import CANVAS, Canvas, Layout, TextLayout, resolve_layout
from banner_render.fonts import FontResolver
from config_loader import DEFAULT_FPS
from logging_utils import get_logger

from .graph import Expr, FilterGraph, Quoted, ffmpeg_color

logger = get_logger(__name__)

BACKGROUND_INPUT = "0:v"
OVERLAY_INPUT = "1:v"
OUTPUT_PAD = "outv"

_TRANSPARENT = (0, 0, 0, 0)


def build_banner_graph(
    background_path: Union[str, Path],
    overlay_path: Optional[Union[str, Path]],
    layout: Union[Layout, Mapping[str, Any], None],
    title: str,
    subtitle: str,
    *,
    full_overlay: bool = True,
    fps: int = DEFAULT_FPS,
    fonts: Optional[FontResolver] = None,
    canvas: Canvas = CANVAS,
) -> FilterGraph:
    """Describe how ffmpeg turns the background (+ overlay) into a palettized loop.

    ``overlay_path`` is input 1 when given. With ``full_overlay`` the overlay is
    a canvas-sized render that already contains the text; otherwise it is only
    the avatar badge and the text is drawn by ffmpeg.
    """
    if not background_path or not Path(background_path).expanduser().is_file():
        raise MissingBackgroundError(background_path)

    resolved = layout if isinstance(layout, Layout) else resolve_layout(layout, canvas)
    has_overlay = overlay_path is not None
    graph = FilterGraph(external_inputs=(BACKGROUND_INPUT, OVERLAY_INPUT) if has_overlay else (BACKGROUND_INPUT,))

    graph.add("fps", {"fps": fps}, inputs=[BACKGROUND_INPUT], outputs=["fps0"])
    graph.add("scale", {"w": canvas.width, "h": canvas.height, "flags": "lanczos"}, inputs=["fps0"], outputs=["sc0"])
    graph.add("format", {"pix_fmts": "rgba"}, inputs=["sc0"], outputs=["bg"])

    if has_overlay and full_overlay:
        graph.add("fps", {"fps": fps}, inputs=[OVERLAY_INPUT], outputs=["fps1"])
        graph.add("format", {"pix_fmts": "rgba"}, inputs=["fps1"], outputs=["ov"])
        _overlay(graph, 0, 0)
    elif has_overlay:
        badge = resolved.avatar.badge_size
        graph.add("fps", {"fps": fps}, inputs=[OVERLAY_INPUT], outputs=["fps1"])
        graph.add("scale", {"w": badge, "h": badge, "flags": "lanczos"}, inputs=["fps1"], outputs=["sc1"])
        graph.add("format", {"pix_fmts": "rgba"}, inputs=["sc1"], outputs=["ov"])
        _overlay(graph, resolved.avatar.x, resolved.avatar.y)
    else:
        graph.add("null", inputs=["bg"], outputs=["lay"])

    graph.add(
        "drawbox",
        {"x": 0, "y": 0, "w": Expr("iw"), "h": Expr("ih"), "color": f"black@{resolved.overlay_opacity:g}", "t": "fill"},
        inputs=["lay"],
        outputs=["shade"],
    )

    current = "shade"
    if not (has_overlay and full_overlay):
        fonts = fonts or FontResolver()
        current = _text_nodes(graph, current, "t1", resolved.title, title, fonts.font_path(bold=True))
        current = _text_nodes(graph, current, "t2", resolved.subtitle, subtitle, fonts.font_path(bold=False))

    graph.add("split", inputs=[current], outputs=["pout", "palin"])
    graph.add("palettegen", {"stats_mode": "full"}, inputs=["palin"], outputs=["pal"])
    graph.add("paletteuse", {"new": 1, "diff_mode": "rectangle"}, inputs=["pout", "pal"], outputs=[OUTPUT_PAD])
    graph.validate(OUTPUT_PAD)

    logger.debug("Filter graph (%d nodes): %s", len(graph), graph.render())
    return graph


def _overlay(graph: FilterGraph, x: int, y: int) -> None:
    # eof_action=repeat holds the last overlay frame for the whole background
    graph.add(
        "overlay",
        {"x": x, "y": y, "shortest": 0, "eof_action": "repeat"},
        inputs=["bg", "ov"],
        outputs=["lay"],
    )


def _text_nodes(
    graph: FilterGraph,
    source: str,
    prefix: str,
    item: TextLayout,
    text: str,
    font_path: Optional[Path],
) -> str:
    """Append the stroke pass then the fill pass for one text element."""
    base = {
        "text": Quoted(text or ""),
        # Literal text; "%{" would otherwise start a drawtext expansion
        "expansion": "none",
        "x":Expr("(w-text_w)/2") if item.center else item.x,
        # Layout y is the baseline; drawtext positions the top of the line box
        "y": Expr(f"{item.y}-ascent"),
        "fontsize": item.size,
    }
    if font_path is not None:
        base["fontfile"] = Quoted(str(font_path))

    stroke_pad = f"{prefix}s"
    graph.add(
        "drawtext",
        {
            **base,
            "fontcolor": ffmpeg_color(_TRANSPARENT),
            "bordercolor": ffmpeg_color(item.stroke_color),
            "borderw": max(0, int(round(item.stroke_width))),
        },
        inputs=[source],
        outputs=[stroke_pad],
    )
    graph.add("drawtext", {**base, "fontcolor": ffmpeg_color(item.color)}, inputs=[stroke_pad], outputs=[prefix])
    return prefix


__all__ = ["BACKGROUND_INPUT", "OUTPUT_PAD", "OVERLAY_INPUT", "build_banner_graph"]
