"""Frame rendering for the welcome loop.

Each frame is a full RGBA canvas: background (static, animated GIF frame or
gradient), a rounded translucent panel, a pulsing avatar with glow and ring,
the title and the username, and a faint moving diagonal sheen.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont, ImageSequence

from asset_cache import AssetStore, LRUCache
from banner_errors import BannerError
from banner_layout import CANVAS, Canvas, Color
from banner_render.fonts import FontResolver
from banner_render.utils import (
    apply_alpha_mask,
    circle_mask,
    decode_image,
    fit_image,
    linear_gradient,
    resize_square,
)
from logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = "Welcome!"
DEFAULT_FRAME_COUNT = 8
DEFAULT_FRAME_DELAY_MS = 80


@dataclass(frozen=True)
class WelcomeTheme:
    gradient_top: Color = (106, 17, 203, 255)
    gradient_bottom: Color = (37, 117, 252, 255)
    panel_padding: int = 28
    panel_radius: int = 18
    panel_fill: Color = (0, 0, 0, 89)
    avatar_size: int = 180
    avatar_inset: int = 36
    avatar_pulse: float = 0.05
    glow_color: Color = (140, 50, 220, 217)
    glow_shadow: Color = (140, 50, 220, 153)
    glow_margin: int = 6
    ring_color: Color = (255, 255, 255, 217)
    ring_width: int = 4
    ring_gap: int = 3
    title_size: int = 80
    name_size: int = 48
    line_spacing: int = 18
    title_stroke: Color = (0, 0, 0, 115)
    text_fill: Color = (255, 255, 255, 255)
    name_shadow: Color = (0, 0, 0, 89)
    name_offset: int = 6
    sheen_offset: int = 80
    sheen_edge_alpha: float = 0.02
    sheen_mid_alpha: float = 0.05


@dataclass
class WelcomeSettings:
    title: str = DEFAULT_TITLE
    frame_count: int = DEFAULT_FRAME_COUNT
    frame_delay_ms: int = DEFAULT_FRAME_DELAY_MS
    background: Optional[Path] = None

    @classmethod
    def from_section(cls, section: Mapping[str, Any], root: Optional[Path] = None) -> "WelcomeSettings":
        settings = cls()
        if section.get("title"):
            settings.title = str(section["title"])
        for name in ("frame_count", "frame_delay_ms"):
            value = section.get(name)
            try:
                parsed = int(value) if value is not None else 0
            except (TypeError, ValueError):
                parsed = 0
            if parsed > 0:
                setattr(settings, name, parsed)
        background = section.get("background")
        if background:
            path = Path(str(background)).expanduser()
            settings.background = (root / path) if root is not None and not path.is_absolute() else path
        return settings


class BackgroundFrames:
    """Decoded, canvas-fitted background frames cached by path and mtime."""

    def __init__(self, canvas: Canvas = CANVAS, capacity: int = 4) -> None:
        self.canvas = canvas
        self._cache: LRUCache[str, List[Image.Image]] = LRUCache(capacity)

    def load(self, path: Optional[Path]) -> List[Image.Image]:
        """Frames for ``path``; an empty list means the gradient fallback."""
        if path is None or not path.is_file():
            if path is not None:
                logger.warning("Welcome background missing: %s", path)
            return []
        key = f"{path.resolve()}:{path.stat().st_mtime_ns}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            with Image.open(path) as image:
                frames = [
                    fit_image(frame.convert("RGBA"), self.canvas.size)
                    for frame in ImageSequence.Iterator(image)
                ]
        except OSError as exc:
            logger.warning("Welcome background unreadable (%s): %s", path, exc)
            return []
        logger.debug("Decoded %d background frame(s) from %s", len(frames), path.name)
        self._cache.put(key, frames)
        return frames


class WelcomeFrameRenderer:
    def __init__(
        self,
        assets: AssetStore,
        *,
        fonts: Optional[FontResolver] = None,
        canvas: Canvas = CANVAS,
        theme: WelcomeTheme = WelcomeTheme(),
        backgrounds: Optional[BackgroundFrames] = None,
    ) -> None:
        self.assets = assets
        self.fonts = fonts or FontResolver()
        self.canvas = canvas
        self.theme = theme
        self.backgrounds = backgrounds or BackgroundFrames(canvas)

    def gradient(self) -> Image.Image:
        return linear_gradient(self.canvas.size, self.theme.gradient_top, self.theme.gradient_bottom)

    def load_avatar(self, source: Optional[str]) -> Optional[Image.Image]:
        if not source:
            return None
        try:
            # Keep enough resolution for the largest pulse
            size = int(math.ceil(self.theme.avatar_size * (1 + self.theme.avatar_pulse)))
            return resize_square(decode_image(self.assets.read(source)), size)
        except (BannerError, OSError, ValueError) as exc:
            logger.warning("Welcome avatar unavailable (%s): %s", source, exc)
            return None

    def render_frames(
        self,
        username: str,
        avatar_source: Optional[str],
        frame_count: int,
        *,
        title: str = DEFAULT_TITLE,
        background: Optional[Path] = None,
    ) -> List[Image.Image]:
        frame_count = max(1, int(frame_count))
        avatar = self.load_avatar(avatar_source)
        bg_frames = self.backgrounds.load(background)
        gradient = None if bg_frames else self.gradient()

        frames: List[Image.Image] = []
        for index in range(frame_count):
            base = bg_frames[index % len(bg_frames)].copy() if bg_frames else gradient.copy()
            frames.append(self.render_frame(base, index, frame_count, username, avatar, title))
        return frames

    def render_frame(
        self,
        base: Image.Image,
        index: int,
        frame_count: int,
        username: str,
        avatar: Optional[Image.Image],
        title: str,
    ) -> Image.Image:
        theme = self.theme
        width, height = self.canvas.size
        phase = 2 * math.pi * index / frame_count
        wave = math.sin(phase)

        pad = theme.panel_padding
        panel = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(panel).rounded_rectangle(
            (pad, pad, width - pad - 1, height - pad - 1), radius=theme.panel_radius, fill=theme.panel_fill
        )
        base.alpha_composite(panel)

        av_x = pad + theme.avatar_inset
        av_y = pad + round((height - 2 * pad - theme.avatar_size) / 2)
        if avatar is not None:
            self._draw_avatar(base, avatar, av_x, av_y, wave)

        text_x = av_x + theme.avatar_size + theme.avatar_inset
        block = theme.title_size + theme.line_spacing + theme.name_size
        text_y = av_y + round((theme.avatar_size - block) / 2)

        title_alpha = 0.6 + 0.4 * wave
        name_alpha = 0.55 + 0.45 * math.sin(phase + math.pi / 4)
        name_shift = round(theme.name_offset * wave)
        self._draw_title(base, title, (text_x, text_y), title_alpha)
        self._draw_name(base, username, (text_x + name_shift, text_y + theme.title_size + theme.line_spacing), name_alpha)

        base.alpha_composite(self._sheen(round(theme.sheen_offset * wave)))
        return base

    # Layers -------------------------------------------------------------
    def _draw_avatar(self, base: Image.Image, avatar: Image.Image, av_x: int, av_y: int, wave: float) -> None:
        theme = self.theme
        size = round(theme.avatar_size * (1 + theme.avatar_pulse * wave))
        x = av_x - round((size - theme.avatar_size) / 2)
        y = av_y - round((size - theme.avatar_size) / 2)

        margin = theme.glow_margin
        outer = (x - margin, y - margin, x + size + margin, y + size + margin)
        blur = 14 * abs(wave) + 6
        glow = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(glow).ellipse(outer, fill=theme.glow_shadow)
        base.alpha_composite(glow.filter(ImageFilter.GaussianBlur(blur / 2)))

        disc = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(disc).ellipse(outer, fill=theme.glow_color)
        base.alpha_composite(disc)

        face = apply_alpha_mask(resize_square(avatar, size), circle_mask(size))
        base.alpha_composite(face, (x, y))

        gap = theme.ring_gap
        ImageDraw.Draw(base).ellipse(
            (x - gap, y - gap, x + size + gap, y + size + gap),
            outline=theme.ring_color,
            width=theme.ring_width,
        )

    def _draw_title(self, base: Image.Image, text: str, xy: Tuple[int, int], alpha: float) -> None:
        if not text:
            return
        theme = self.theme
        font = self.fonts.get(theme.title_size, bold=True)
        layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        anchor = _top_left(font)
        if anchor:
            stroke = max(6, round(theme.title_size / 12))
            draw.text(xy, text, font=font, anchor=anchor, fill=theme.title_stroke, stroke_width=stroke, stroke_fill=theme.title_stroke)
            layer = layer.filter(ImageFilter.GaussianBlur(1))
            draw = ImageDraw.Draw(layer)
        draw.text(xy, text, font=font, anchor=anchor, fill=theme.text_fill)
        base.alpha_composite(_fade(layer, alpha))

    def _draw_name(self, base: Image.Image, text: str, xy: Tuple[int, int], alpha: float) -> None:
        if not text:
            return
        theme = self.theme
        font = self.fonts.get(theme.name_size, bold=True)
        anchor = _top_left(font)
        shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(shadow).text(xy, text, font=font, anchor=anchor, fill=theme.name_shadow)
        layer = shadow.filter(ImageFilter.GaussianBlur(3))
        ImageDraw.Draw(layer).text(xy, text, font=font, anchor=anchor, fill=theme.text_fill)
        base.alpha_composite(_fade(layer, alpha))

    def _sheen(self, offset: int) -> Image.Image:
        """White diagonal gradient, faint at the edges and strongest mid-way."""
        theme = self.theme
        width, height = self.canvas.size
        xs = np.arange(width, dtype=np.float32)[None, :] + offset
        ys = np.arange(height, dtype=np.float32)[:, None]
        t = np.clip((xs * width + ys * height) / float(width * width + height * height), 0.0, 1.0)
        peak = 1.0 - np.abs(2.0 * t - 1.0)
        alpha = theme.sheen_edge_alpha + (theme.sheen_mid_alpha - theme.sheen_edge_alpha) * peak
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[..., :3] = 255
        pixels[..., 3] = np.rint(alpha * 255).astype(np.uint8)
        return Image.fromarray(pixels, "RGBA")


def _top_left(font: ImageFont.ImageFont) -> Optional[str]:
    return "lt" if isinstance(font, ImageFont.FreeTypeFont) else None


def _fade(layer: Image.Image, alpha: float) -> Image.Image:
    alpha = max(0.0, min(1.0, alpha))
    layer.putalpha(layer.getchannel("A").point(lambda v: int(round(v * alpha))))
    return layer


__all__ = [
    "BackgroundFrames",
    "DEFAULT_FRAME_COUNT",
    "DEFAULT_FRAME_DELAY_MS",
    "DEFAULT_TITLE",
    "WelcomeFrameRenderer",
    "WelcomeSettings",
    "WelcomeTheme",
]
