"""Font discovery for banner text.

A regular and a bold face are probed from platform-specific locations. When
neither exists the renderer still succeeds with Pillow's built-in sans-serif.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont

from logging_utils import get_logger

logger = get_logger(__name__)

_CANDIDATES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "win32": {
        "regular": ("C:/Windows/Fonts/segoeui.ttf", "C:/Windows/Fonts/arial.ttf"),
        "bold": ("C:/Windows/Fonts/segoeuib.ttf", "C:/Windows/Fonts/arialbd.ttf"),
    },
    "darwin": {
        "regular": ("/System/Library/Fonts/Supplemental/Arial.ttf", "/Library/Fonts/Arial.ttf"),
        "bold": ("/System/Library/Fonts/Supplemental/Arial Bold.ttf", "/Library/Fonts/Arial Bold.ttf"),
    },
    "linux": {
        "regular": (
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/TTF/DejaVuSans.ttf",
        ),
        "bold": (
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
            "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
        ),
    },
}


def candidate_paths(weight: str, platform: Optional[str] = None) -> List[str]:
    platform = platform or sys.platform
    key = "win32" if platform.startswith("win") else "darwin" if platform == "darwin" else "linux"
    return list(_CANDIDATES[key][weight])


@dataclass
class FontResolver:
    """Locate font files once and hand out sized fonts from a small cache."""

    regular_override: Optional[str] = None
    bold_override: Optional[str] = None
    platform: Optional[str] = None
    _paths: Dict[bool, Optional[Path]] = field(default_factory=dict, init=False)
    _font_cache: Dict[Tuple[int, bool], ImageFont.ImageFont] = field(default_factory=dict, init=False)

    def font_path(self, bold: bool = False) -> Optional[Path]:
        """Path of the regular/bold face, ``None`` when only the generic fallback exists."""
        if bold in self._paths:
            return self._paths[bold]

        override = self.bold_override if bold else self.regular_override
        candidates = ([override] if override else []) + candidate_paths("bold" if bold else "regular", self.platform)
        resolved: Optional[Path] = None
        for candidate in candidates:
            path = Path(candidate).expanduser()
            if path.is_file():
                resolved = path
                break
        if resolved is None and bold:
            # A missing bold face reuses the regular one before giving up
            resolved = self.font_path(bold=False)
        if resolved is None:
            logger.warning("No %s font found; using generic sans-serif", "bold" if bold else "regular")
        self._paths[bold] = resolved
        return resolved

    def get(self, size: int, bold: bool = False) -> ImageFont.ImageFont:
        key = (size, bold)
        if key in self._font_cache:
            return self._font_cache[key]

        path = self.font_path(bold)
        font: ImageFont.ImageFont
        try:
            if path is not None:
                font = ImageFont.truetype(str(path), size=size)
            else:
                font = _generic_sans(size)
        except OSError:
            logger.warning("Failed to load font %s; using generic sans-serif", path)
            font = _generic_sans(size)
        self._font_cache[key] = font
        return font


def _generic_sans(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size=size)
    except OSError:
        pass
    return ImageFont.load_default(size=size)


__all__ = ["FontResolver", "candidate_paths"]
