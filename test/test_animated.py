from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, List, Sequence

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import banner_ffmpeg.animated as animated  # noqa: E402
import banner_ffmpeg.runner as runner  # noqa: E402
from asset_cache import AssetStore, BannerCaches  # noqa: E402
from banner_errors import EngineError, EngineUnavailableError, MissingBackgroundError  # noqa: E402
from banner_ffmpeg.animated import AnimatedBannerComposer  # noqa: E402
from banner_render.composer import BannerComposer  # noqa: E402


class DummySession:
    headers: dict[str, str] = {}

    def get(self, url: str, **kwargs: Any) -> Any:  # pragma: no cover - never called
        raise AssertionError("no network in tests")


def _animated(tmp_path: Path) -> AnimatedBannerComposer:
    assets = AssetStore(tmp_path / "cache", session=DummySession())  # type: ignore[arg-type]
    composer = BannerComposer(caches=BannerCaches(), assets=assets)
    return AnimatedBannerComposer(composer, temp_dir=tmp_path / "tmp")


def _background(tmp_path: Path) -> Path:
    path = tmp_path / "bg.gif"
    frames = [Image.new("RGB", (120, 40), color) for color in ((255, 0, 0), (0, 0, 255))]
    frames[0].save(path, save_all=True, append_images=frames[1:], duration=100, loop=0)
    return path


def _temp_files(tmp_path: Path) -> List[Path]:
    temp_dir = tmp_path / "tmp"
    return sorted(temp_dir.iterdir()) if temp_dir.exists() else []


@pytest.fixture
def engine_available(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(animated, "probe_ffmpeg", lambda path="ffmpeg": "ffmpeg version test")


def test_missing_background_leaves_no_temp_files(tmp_path: Path, engine_available: None) -> None:
    composer = _animated(tmp_path)

    with pytest.raises(MissingBackgroundError):
        composer.compose_animated(tmp_path / "missing.gif", "Title", "Sub")
    assert _temp_files(tmp_path) == []


def test_probe_failure_is_reported(tmp_path: Path) -> None:
    with pytest.raises(EngineUnavailableError):
        runner.probe_ffmpeg(str(tmp_path / "no-such-ffmpeg"))


def test_unavailable_engine_stops_before_rendering(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail_probe(path: str = "ffmpeg") -> str:
        raise EngineUnavailableError("ffmpeg not found")

    monkeypatch.setattr(animated, "probe_ffmpeg", fail_probe)

    with pytest.raises(EngineUnavailableError):
        _animated(tmp_path).compose_animated(_background(tmp_path), "Title", "Sub")
    assert _temp_files(tmp_path) == []


def test_successful_render_returns_gif_and_cleans_up(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, engine_available: None
) -> None:
    calls: List[Sequence[str]] = []

    def fake_run(args: Sequence[str], *, ffmpeg_path: str = "ffmpeg", cwd: Any = None) -> None:
        calls.append(list(args))
        overlay = Path(args[args.index("-i", 2) + 1])
        assert overlay.exists() and overlay.read_bytes().startswith(b"\x89PNG")
        frames = [Image.new("RGB", (1200, 400), (i * 40, 0, 0)) for i in range(3)]
        frames[0].save(args[-1], format="GIF", save_all=True, append_images=frames[1:], duration=60, loop=0)

    monkeypatch.setattr(animated, "run_ffmpeg", fake_run)

    payload = _animated(tmp_path).compose_animated(_background(tmp_path), "Title: 1", "Sub")

    assert payload[:6] in (b"GIF87a", b"GIF89a")
    assert _temp_files(tmp_path) == []
    args = calls[0]
    graph = args[args.index("-filter_complex") + 1]
    assert "eof_action=repeat" in graph
    assert "drawtext" not in graph
    assert args[args.index("-map") + 1] == "[outv]"
    assert args[args.index("-loop") + 1] == "0"
    assert args[args.index("-f") + 1] == "gif"


def test_engine_failure_still_cleans_up(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, engine_available: None
) -> None:
    def failing_run(args: Sequence[str], **kwargs: Any) -> None:
        assert len(_temp_files(tmp_path)) == 2
        raise EngineError("ffmpeg failed with exit code 1", "Invalid argument")

    monkeypatch.setattr(animated, "run_ffmpeg", failing_run)

    with pytest.raises(EngineError) as excinfo:
        _animated(tmp_path).compose_animated(_background(tmp_path), "Title", "Sub")
    assert excinfo.value.stderr_tail == "Invalid argument"
    assert _temp_files(tmp_path) == []


def test_non_gif_output_is_an_engine_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, engine_available: None
) -> None:
    monkeypatch.setattr(animated, "run_ffmpeg", lambda args, **kwargs: None)

    with pytest.raises(EngineError):
        _animated(tmp_path).compose_animated(_background(tmp_path), "Title", "Sub")
    assert _temp_files(tmp_path) == []


def test_run_ffmpeg_surfaces_stderr_tail(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: List[List[str]] = []

    def fake_subprocess_run(cmd: List[str], **kwargs: Any) -> SimpleNamespace:
        captured.append(cmd)
        return SimpleNamespace(returncode=1, stderr="first\nsecond\n")

    monkeypatch.setattr(runner.subprocess, "run", fake_subprocess_run)

    with pytest.raises(EngineError) as excinfo:
        runner.run_ffmpeg(["-i", "in.gif", "out.gif"], ffmpeg_path="/opt/ffmpeg")
    assert excinfo.value.stderr_tail == "first\nsecond"
    assert captured[0][:5] == ["/opt/ffmpeg", "-hide_banner", "-loglevel", "error", "-nostats"]


def test_run_ffmpeg_missing_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(cmd: List[str], **kwargs: Any) -> None:
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(runner.subprocess, "run", missing)

    with pytest.raises(EngineUnavailableError):
        runner.run_ffmpeg(["-version"])
