from __future__ import annotations

import sys
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from PIL import Image, ImageChops

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from asset_cache import AssetStore, BannerCaches  # noqa: E402
from banner_errors import MissingBackgroundError  # noqa: E402
from banner_render.composer import BackgroundMode, BannerComposer  # noqa: E402
from banner_render.fonts import FontResolver  # noqa: E402


class DummyResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.content = b""


class DummySession:
    def __init__(self, status_code: int = 404) -> None:
        self.headers: dict[str, str] = {}
        self.status_code = status_code

    def get(self, url: str, **kwargs: Any) -> DummyResponse:
        return DummyResponse(self.status_code)


def _composer(tmp_path: Path) -> BannerComposer:
    assets = AssetStore(tmp_path / "cache", session=DummySession())  # type: ignore[arg-type]
    return BannerComposer(caches=BannerCaches(), assets=assets, fonts=FontResolver())


def _open(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image.convert("RGBA")


def test_full_composite_without_background_or_avatar(tmp_path: Path) -> None:
    composer = _composer(tmp_path)

    image = _open(composer.compose_full(None, "Hello", "World"))

    assert image.size == (1200, 400)
    # Rounded corners are cut out, the body is opaque
    assert image.getpixel((0, 0))[3] == 0
    assert image.getpixel((600, 30))[3] == 255
    r, g, b, _ = image.getpixel((40, 40))
    assert r > b
    assert composer.caches.background.keys() == ["gradient"]


def test_text_layers_change_the_output(tmp_path: Path) -> None:
    composer = _composer(tmp_path)

    blank = _open(composer.compose_full(None, "", ""))
    with_text = _open(composer.compose_full(None, "Hello", "World"))

    assert ImageChops.difference(blank, with_text).getbbox() is not None


def test_overlay_is_transparent_without_content(tmp_path: Path) -> None:
    composer = _composer(tmp_path)

    empty = _open(composer.compose_overlay("", "", None, {"overlayOpacity": 0}))
    texted = _open(composer.compose_overlay("Title", "Sub", None, {"overlayOpacity": 0}))

    assert empty.size == (1200, 400)
    assert empty.getchannel("A").getextrema() == (0, 0)
    assert texted.getchannel("A").getextrema()[1] > 0
    assert composer.caches.background.keys() == []


def test_missing_background_path_raises(tmp_path: Path) -> None:
    composer = _composer(tmp_path)

    with pytest.raises(MissingBackgroundError) as excinfo:
        composer.compose_full(tmp_path / "missing.png", "a", "b")
    assert isinstance(excinfo.value, FileNotFoundError)


def test_unreachable_avatar_is_skipped(tmp_path: Path) -> None:
    composer = _composer(tmp_path)

    without = _open(composer.compose_overlay("T", "S"))
    with_broken = _open(composer.compose_overlay("T", "S", "https://example.com/avatar.png"))
    with_missing_file = _open(composer.compose_overlay("T", "S", str(tmp_path / "nope.png")))

    assert ImageChops.difference(without, with_broken).getbbox() is None
    assert ImageChops.difference(without, with_missing_file).getbbox() is None
    assert len(composer.caches.avatar) == 0


def test_avatar_badge_has_ring_and_is_cached(tmp_path: Path) -> None:
    avatar_path = tmp_path / "avatar.png"
    Image.new("RGB", (64, 64), (255, 0, 0)).save(avatar_path)
    composer = _composer(tmp_path)
    layout = {"avatar": {"size": 100, "x": 10, "y": 10}}

    image = _open(composer.compose_overlay("", "", str(avatar_path), layout))

    # Badge is 110px: ring from radius 50 to 55 around (65, 65)
    centre = image.getpixel((65, 65))
    ring = image.getpixel((65, 12))
    assert centre[0] > 200 and centre[1] < 60
    assert ring[0] < 60 and ring[2] > 200
    assert f"{avatar_path}|100" in composer.caches.avatar


def test_local_background_is_fitted_and_cached(tmp_path: Path) -> None:
    background = tmp_path / "bg.png"
    Image.new("RGB", (600, 600), (0, 0, 255)).save(background)
    composer = _composer(tmp_path)

    first = _open(composer.compose_full(background, "", "", layout={"overlayOpacity": 0}))
    composer.compose_full(background, "", "", layout={"overlayOpacity": 0})

    assert first.size == (1200, 400)
    r, g, b, _ = first.getpixel((600, 200))
    assert b > 250 and r < 5 and g < 5
    keys = composer.caches.background.keys()
    assert len(keys) == 1 and keys[0].startswith("file:")


def test_render_modes_share_the_pipeline(tmp_path: Path) -> None:
    composer = _composer(tmp_path)

    opaque = composer.render(BackgroundMode.OPAQUE, "a", "b")
    transparent = composer.render(BackgroundMode.TRANSPARENT, "a", "b")

    assert opaque.size == transparent.size == (1200, 400)
    assert opaque.getpixel((600, 200))[3] == 255
    assert transparent.getpixel((5, 0))[3] == 0
