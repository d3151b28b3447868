"""Static raster banner composer.

Layers, bottom to top: background, avatar badge, contrast shade, text shadow,
title and subtitle (stroke pass then fill pass each), rounded-corner mask.
The overlay-only mode skips the background and the mask so the result can be
laid over an animated background by ffmpeg.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from asset_cache import AssetStore, BannerCaches, is_url
from banner_errors import BannerError, MissingBackgroundError
from banner_layout import CANVAS, RING_PADDING, Canvas, Layout, TextLayout, resolve_layout
from logging_utils import get_logger

from .fonts import FontResolver
from .utils import (
    apply_alpha_mask,
    circle_mask,
    decode_image,
    encode_png,
    filled_circle,
    fit_image,
    linear_gradient,
    resize_square,
    rounded_rect_mask,
)

logger = get_logger(__name__)

LayoutInput = Union[Layout, Mapping[str, Any], None]

CORNER_RADIUS = 28
RING_COLOR = (0, 229, 255, 255)
GRADIENT_STOPS = ((245, 158, 11, 255), (239, 68, 68, 255))
SHADOW_OFFSET = (0, 2)
SHADOW_BLUR = 3
SHADOW_ALPHA = 153


class BackgroundMode(Enum):
    """Which kind of base the layer pipeline starts from."""

    OPAQUE = "opaque"
    TRANSPARENT = "transparent"


class BannerComposer:
    """Compose banners from a background, an avatar badge and two text lines."""

    def __init__(
        self,
        *,
        caches: BannerCaches,
        assets: AssetStore,
        fonts: Optional[FontResolver] = None,
        canvas: Canvas = CANVAS,
    ) -> None:
        self.caches = caches
        self.assets = assets
        self.fonts = fonts or FontResolver()
        self.canvas = canvas

    # Public API ---------------------------------------------------------
    def compose_overlay(
        self,
        title: str,
        subtitle: str,
        avatar_source: Optional[str] = None,
        layout: LayoutInput = None,
    ) -> bytes:
        """Transparent PNG with only the avatar badge and text."""
        image = self.render(BackgroundMode.TRANSPARENT, title, subtitle, avatar_source, layout)
        return encode_png(image)

    def compose_full(
        self,
        background: Optional[Union[str, Path]],
        title: str,
        subtitle: str,
        avatar_source: Optional[str] = None,
        layout: LayoutInput = None,
    ) -> bytes:
        """Opaque PNG banner with rounded corners.

        ``background`` may be a local path, a URL or ``None`` for the default
        gradient. A local path that does not exist raises ``MissingBackgroundError``.
        """
        image = self.render(
            BackgroundMode.OPAQUE,
            title,
            subtitle,
            avatar_source,
            layout,
            background=background,
        )
        return encode_png(image)

    def render(
        self,
        mode: BackgroundMode,
        title: str,
        subtitle: str,
        avatar_source: Optional[str] = None,
        layout: LayoutInput = None,
        *,
        background: Optional[Union[str, Path]] = None,
    ) -> Image.Image:
        resolved = layout if isinstance(layout, Layout) else resolve_layout(layout, self.canvas)

        if mode is BackgroundMode.OPAQUE:
            base = self._background_layer(background)
        else:
            base = Image.new("RGBA", self.canvas.size, (0, 0, 0, 0))

        if avatar_source:
            badge = self._badge(avatar_source, resolved.avatar.size)
            if badge is not None:
                base.alpha_composite(badge, (resolved.avatar.x, resolved.avatar.y))

        base.alpha_composite(self._shade_layer(mode, resolved.overlay_opacity))
        base.alpha_composite(self._text_layer(resolved, title or "", subtitle or ""))

        if mode is BackgroundMode.OPAQUE:
            base = apply_alpha_mask(base, rounded_rect_mask(self.canvas.size, CORNER_RADIUS))
        return base

    # Layers -------------------------------------------------------------
    def _background_layer(self, source: Optional[Union[str, Path]]) -> Image.Image:
        if source is not None and not is_url(source) and not Path(source).expanduser().is_file():
            raise MissingBackgroundError(source)

        key = AssetStore.background_key(source)
        cached = self.caches.background.get(key)
        if cached is not None:
            return decode_image(cached)

        if source is None:
            image = linear_gradient(self.canvas.size, *GRADIENT_STOPS, direction="diagonal")
        else:
            image = fit_image(decode_image(self.assets.read(source)), self.canvas.size)
        self.caches.background.put(key, encode_png(image))
        logger.debug("Background cached: %s", key)
        return image

    def _badge(self, source: str, size: int) -> Optional[Image.Image]:
        key = f"{source}|{size}"
        cached = self.caches.avatar.get(key)
        if cached is not None:
            return decode_image(cached)

        try:
            avatar = resize_square(decode_image(self.assets.read(source)), size)
        except (BannerError, OSError, ValueError) as exc:
            logger.warning("Avatar unavailable (%s); rendering without it: %s", source, exc)
            return None

        avatar = apply_alpha_mask(avatar, circle_mask(size))
        badge = filled_circle(size + RING_PADDING * 2, RING_COLOR)
        badge.alpha_composite(avatar, (RING_PADDING, RING_PADDING))
        self.caches.avatar.put(key, encode_png(badge))
        return badge

    def _shade_layer(self, mode: BackgroundMode, opacity: float) -> Image.Image:
        alpha = int(round(opacity * 255))
        if mode is BackgroundMode.OPAQUE:
            return Image.new("RGBA", self.canvas.size, (0, 0, 0, alpha))
        return linear_gradient(self.canvas.size, (0, 0, 0, 0), (0, 0, 0, alpha))

    def _text_layer(self, layout: Layout, title: str, subtitle: str) -> Image.Image:
        items = (
            (layout.title, title, True),
            (layout.subtitle, subtitle, False),
        )

        shadow = Image.new("RGBA", self.canvas.size, (0, 0, 0, 0))
        shadow_draw = ImageDraw.Draw(shadow)
        for item, text, bold in items:
            if text:
                font = self.fonts.get(item.size, bold=bold)
                xy, anchor = self._text_origin(font, item, text)
                xy = (xy[0] + SHADOW_OFFSET[0], xy[1] + SHADOW_OFFSET[1])
                stroke = _stroke_px(item.stroke_width) if anchor else 0
                shadow_draw.text(
                    xy,
                    text,
                    font=font,
                    anchor=anchor,
                    fill=(0, 0, 0, SHADOW_ALPHA),
                    stroke_width=stroke,
                    stroke_fill=(0, 0, 0, SHADOW_ALPHA),
                )
        layer = shadow.filter(ImageFilter.GaussianBlur(SHADOW_BLUR))

        draw = ImageDraw.Draw(layer)
        for item, text, bold in items:
            if text:
                self._draw_text(draw, item, text, self.fonts.get(item.size, bold=bold))
        return layer

    def _draw_text(self, draw: ImageDraw.ImageDraw, item: TextLayout, text: str, font: ImageFont.ImageFont) -> None:
        xy, anchor = self._text_origin(font, item, text)
        # Bitmap fonts have no outline support
        stroke = _stroke_px(item.stroke_width) if anchor else 0
        if stroke > 0:
            draw.text(
                xy,
                text,
                font=font,
                anchor=anchor,
                fill=item.stroke_color,
                stroke_width=stroke,
                stroke_fill=item.stroke_color,
            )
        draw.text(xy, text, font=font, anchor=anchor, fill=item.color)

    def _text_origin(
        self, font: ImageFont.ImageFont, item: TextLayout, text: str
    ) -> Tuple[Tuple[float, float], Optional[str]]:
        """Baseline anchor point for ``text``; centred items anchor at the canvas midpoint."""
        x = item.anchor_x(self.canvas)
        if isinstance(font, ImageFont.FreeTypeFont):
            return (x, float(item.y)), ("ms" if item.center else "ls")
        # Bitmap fonts cannot anchor, so offset by the measured box instead
        left, top, right, bottom = font.getbbox(text)
        width = right - left
        if item.center:
            x -= width / 2
        return (x, float(item.y - bottom)), None


def _stroke_px(width: float) -> int:
    return max(0, int(round(width)))


__all__ = ["BackgroundMode", "BannerComposer", "CORNER_RADIUS"]
