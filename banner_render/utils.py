"""Pixel helpers shared by the static composer and the welcome-loop renderer."""
from __future__ import annotations

from io import BytesIO
from typing import Tuple

import numpy as np
from PIL import Image, ImageChops, ImageDraw

_RESAMPLE = Image.Resampling.LANCZOS

# Shapes are drawn at this multiple and downsampled for anti-aliased edges
_SUPERSAMPLE = 4

Color = Tuple[int, int, int, int]


def fit_image(image: Image.Image, target: Tuple[int, int]) -> Image.Image:
    """Resize and centre-crop an image so it fills the target rectangle."""

    target_w, target_h = target
    if target_w <= 0 or target_h <= 0:
        raise ValueError("Target size must be positive")

    src_w, src_h = image.size
    if src_w == 0 or src_h == 0:
        return Image.new("RGBA", target, (32, 32, 32, 255))

    scale = max(target_w / src_w, target_h / src_h)
    new_size = (max(target_w, round(src_w * scale)), max(target_h, round(src_h * scale)))
    resized = image.resize(new_size, _RESAMPLE)

    left = (resized.width - target_w) // 2
    top = (resized.height - target_h) // 2
    return resized.crop((left, top, left + target_w, top + target_h))


def resize_square(image: Image.Image, size: int) -> Image.Image:
    """Centre-crop to a square and resize to ``size`` x ``size``."""
    return fit_image(image, (size, size))


def linear_gradient(
    size: Tuple[int, int],
    start: Color,
    end: Color,
    *,
    direction: str = "vertical",
    offset: float = 0.0,
) -> Image.Image:
    """Two-stop linear gradient as an RGBA image.

    ``direction`` is ``vertical`` (top to bottom) or ``diagonal`` (top-left to
    bottom-right). ``offset`` shifts a diagonal gradient horizontally in pixels.
    """
    width, height = size
    xs = np.arange(width, dtype=np.float32)[None, :]
    ys = np.arange(height, dtype=np.float32)[:, None]
    if direction == "diagonal":
        t = ((xs + offset) / max(width - 1, 1) + ys / max(height - 1, 1)) / 2.0
    else:
        t = np.broadcast_to(ys / max(height - 1, 1), (height, width))
    t = np.clip(t, 0.0, 1.0)[..., None]
    start_arr = np.array(start, dtype=np.float32)
    end_arr = np.array(end, dtype=np.float32)
    pixels = start_arr + (end_arr - start_arr) * t
    return Image.fromarray(np.rint(pixels).astype(np.uint8), "RGBA")


def circle_mask(diameter: int) -> Image.Image:
    """Anti-aliased circular alpha mask."""
    big = diameter * _SUPERSAMPLE
    mask = Image.new("L", (big, big), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, big - 1, big - 1), fill=255)
    return mask.resize((diameter, diameter), _RESAMPLE)


def filled_circle(diameter: int, color: Color) -> Image.Image:
    disc = Image.new("RGBA", (diameter, diameter), color)
    disc.putalpha(ImageChops.multiply(disc.getchannel("A"), circle_mask(diameter)))
    return disc


def rounded_rect_mask(size: Tuple[int, int], radius: int) -> Image.Image:
    width, height = size
    big = Image.new("L", (width * _SUPERSAMPLE, height * _SUPERSAMPLE), 0)
    ImageDraw.Draw(big).rounded_rectangle(
        (0, 0, big.width - 1, big.height - 1),
        radius=radius * _SUPERSAMPLE,
        fill=255,
    )
    return big.resize(size, _RESAMPLE)


def apply_alpha_mask(image: Image.Image, mask: Image.Image) -> Image.Image:
    """Destination-in composite: keep ``image`` only where ``mask`` is opaque."""
    result = image.convert("RGBA")
    result.putalpha(ImageChops.multiply(result.getchannel("A"), mask))
    return result


def encode_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def decode_image(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image.convert("RGBA")


__all__ = [
    "apply_alpha_mask",
    "circle_mask",
    "decode_image",
    "encode_png",
    "filled_circle",
    "fit_image",
    "linear_gradient",
    "resize_square",
    "rounded_rect_mask",
]
