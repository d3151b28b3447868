"""Self-contained animated welcome banner (no external process)."""

from .encoder import WelcomeLoopEncoder, color_cube_palette, quantize_frame
from .frames import WelcomeFrameRenderer, WelcomeSettings

__all__ = [
    "WelcomeFrameRenderer",
    "WelcomeLoopEncoder",
    "WelcomeSettings",
    "color_cube_palette",
    "quantize_frame",
]
