"""Fixed-palette GIF encoding for the welcome loop.

Every pixel is snapped to a 6x6x6 colour cube (216 colours, padded to a
256-entry palette) instead of a palette derived from the frames, so encoding
needs no external process and is deterministic. ``WelcomeLoopEncoder.encode_loop``
never raises: when packing fails it degrades to a PNG of the last frame.
"""
from __future__ import annotations

from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from banner_render.utils import encode_png
from logging_utils import get_logger

from .frames import DEFAULT_FRAME_COUNT, DEFAULT_FRAME_DELAY_MS, DEFAULT_TITLE, WelcomeFrameRenderer

logger = get_logger(__name__)

CUBE_LEVELS = 6
CUBE_SIZE = CUBE_LEVELS ** 3
PALETTE_SIZE = 256


@lru_cache(maxsize=1)
def color_cube_palette() -> Tuple[int, ...]:
    """256 palette entries as 24-bit ``0xRRGGBB`` ints; slots past 215 are black."""
    steps = [round(level * 255 / (CUBE_LEVELS - 1)) for level in range(CUBE_LEVELS)]
    colors = [(r << 16) | (g << 8) | b for r in steps for g in steps for b in steps]
    return tuple(colors + [0] * (PALETTE_SIZE - CUBE_SIZE))


@lru_cache(maxsize=1)
def _palette_bytes() -> bytes:
    return b"".join(bytes(((c >> 16) & 0xFF, (c >> 8) & 0xFF, c & 0xFF)) for c in color_cube_palette())


def cube_index(r: int, g: int, b: int) -> int:
    ri, gi, bi = (_level(c) for c in (r, g, b))
    return ri * 36 + gi * 6 + bi


def quantize_indices(pixels: np.ndarray) -> np.ndarray:
    """Map an ``(h, w, >=3)`` uint8 array to an ``(h, w)`` array of cube indices."""
    levels = np.floor(pixels[..., :3].astype(np.float64) * (CUBE_LEVELS - 1) / 255.0 + 0.5).astype(np.uint8)
    return (levels[..., 0] * 36 + levels[..., 1] * 6 + levels[..., 2]).astype(np.uint8)


def quantize_frame(frame: Image.Image) -> Image.Image:
    """Palette-mode copy of ``frame`` using the fixed colour cube (alpha is dropped)."""
    indices = quantize_indices(np.asarray(frame.convert("RGB")))
    indexed = Image.frombytes("P", frame.size, np.ascontiguousarray(indices).tobytes())
    indexed.putpalette(_palette_bytes())
    return indexed


def pack_gif(frames: Sequence[Image.Image], frame_delay_ms: int) -> bytes:
    """Write palettized frames as an infinitely looping GIF.

    Pillow folds a frame that is identical to the one before it into the
    previous image block and adds its delay there, so a run of equal frames
    becomes one longer frame. Loop timing is unchanged.
    """
    if not frames:
        raise ValueError("No frames to encode")
    # GIF delays are stored in hundredths of a second
    delay_units = max(1, round(frame_delay_ms / 10))
    buffer = BytesIO()
    first, rest = frames[0], list(frames[1:])
    first.save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=rest,
        duration=delay_units * 10,
        loop=0,
        optimize=False,
    )
    return buffer.getvalue()


class WelcomeLoopEncoder:
    def __init__(self, renderer: WelcomeFrameRenderer) -> None:
        self.renderer = renderer

    def encode_loop(
        self,
        username: str,
        avatar_source: Optional[str],
        frame_count: int = DEFAULT_FRAME_COUNT,
        frame_delay_ms: int = DEFAULT_FRAME_DELAY_MS,
        *,
        title: str = DEFAULT_TITLE,
        background: Optional[Path] = None,
    ) -> bytes:
        frames: List[Image.Image] = []
        try:
            frames = self.renderer.render_frames(
                username, avatar_source, frame_count, title=title, background=background
            )
            payload = pack_gif([quantize_frame(frame) for frame in frames], frame_delay_ms)
            logger.info("Welcome loop encoded: %d frame(s), %d bytes", len(frames), len(payload))
            return payload
        except Exception:
            logger.exception("Welcome loop encoding failed; returning a still frame")
        return self._still(frames)

    def _still(self, frames: Sequence[Image.Image]) -> bytes:
        if frames:
            return encode_png(frames[-1])
        return encode_png(self.renderer.gradient())


def _level(channel: int) -> int:
    return int(channel * (CUBE_LEVELS - 1) / 255.0 + 0.5)


__all__ = [
    "WelcomeLoopEncoder",
    "color_cube_palette",
    "cube_index",
    "pack_gif",
    "quantize_frame",
    "quantize_indices",
]
