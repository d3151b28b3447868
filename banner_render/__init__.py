"""Raster rendering of banner layers (background, avatar badge, text)."""

from .composer import BackgroundMode, BannerComposer
from .fonts import FontResolver
from .text_markup import build_text_layer_svg, escape_markup

__all__ = [
    "BackgroundMode",
    "BannerComposer",
    "FontResolver",
    "build_text_layer_svg",
    "escape_markup",
]
