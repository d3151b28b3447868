from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
from PIL import ImageFont

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import banner_render.fonts as fonts_module  # noqa: E402
from banner_render.fonts import FontResolver, candidate_paths  # noqa: E402


def _no_named_fonts(monkeypatch: pytest.MonkeyPatch) -> None:
    real_truetype = ImageFont.truetype

    def fake_truetype(font: Any, *args: Any, **kwargs: Any) -> Any:
        # Named files are unavailable; Pillow's embedded default still loads
        if isinstance(font, (str, Path)):
            raise OSError(f"cannot open resource: {font}")
        return real_truetype(font, *args, **kwargs)

    monkeypatch.setattr(fonts_module, "candidate_paths", lambda weight, platform=None: [])
    monkeypatch.setattr(fonts_module.ImageFont, "truetype", fake_truetype)


def test_generic_fallback_keeps_requested_size(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_named_fonts(monkeypatch)
    resolver = FontResolver()

    font = resolver.get(40, bold=True)

    assert resolver.font_path(bold=True) is None
    assert isinstance(font, ImageFont.FreeTypeFont)
    assert font.size == 40
    assert resolver.get(40, bold=True) is font


def test_unloadable_override_falls_back_to_generic(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    broken = tmp_path / "broken.ttf"
    broken.write_bytes(b"not a font")
    monkeypatch.setattr(fonts_module, "candidate_paths", lambda weight, platform=None: [])

    resolver = FontResolver(regular_override=str(broken))
    font = resolver.get(24)

    assert resolver.font_path() == broken
    assert isinstance(font, ImageFont.FreeTypeFont)
    assert font.size == 24


def test_candidate_paths_follow_platform() -> None:
    assert candidate_paths("bold", "win32")[0].endswith("segoeuib.ttf")
    assert candidate_paths("regular", "darwin")[0].endswith("Arial.ttf")
    assert candidate_paths("regular", "linux")[0].endswith("DejaVuSans.ttf")
