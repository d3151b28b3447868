from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import banner_main  # noqa: E402
from banner_layout import resolve_layout  # noqa: E402


@pytest.fixture(autouse=True)
def in_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


def test_static_command_writes_png(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "out" / "banner.png"

    code = banner_main.main(["static", "--title", "Hello", "--subtitle", "World", "--output", str(output)])

    assert code == 0
    with Image.open(output) as image:
        assert image.size == (1200, 400)
    summary = json.loads(capsys.readouterr().out)
    assert summary["output"] == str(output)
    assert summary["layout"]["title"]["size"] == 100
    assert summary["layout"]["overlayOpacity"] == 0.2


def test_summary_reports_resolved_layout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    layout_file = tmp_path / "layout.json"
    layout_file.write_text(json.dumps({"avatar": {"size": 999}, "title": {"center": "no", "x": 300}}), encoding="utf-8")

    code = banner_main.main(["overlay", "--layout", str(layout_file), "--output", str(tmp_path / "o.png")])

    assert code == 0
    layout = json.loads(capsys.readouterr().out)["layout"]
    assert resolve_layout(layout) == resolve_layout(json.loads(layout_file.read_text(encoding="utf-8")))
    assert layout["title"]["x"] == 300
    assert layout["avatar"]["size"] < 999


def test_overlay_svg_command(tmp_path: Path) -> None:
    output = tmp_path / "text.svg"

    code = banner_main.main(["overlay", "--svg", "--title", "A & B", "--output", str(output)])

    assert code == 0
    assert "A &amp; B" in output.read_text(encoding="utf-8")


def test_missing_background_exits_with_error(tmp_path: Path) -> None:
    code = banner_main.main(["static", "--background", str(tmp_path / "nope.png"), "--output", str(tmp_path / "b.png")])

    assert code == 1
    assert not (tmp_path / "b.png").exists()


def test_graph_command_reads_yaml_layout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    background = tmp_path / "bg.gif"
    background.write_bytes(b"GIF89a")
    layout = tmp_path / "layout.yaml"
    layout.write_text("avatar:\n  size: 9999\n", encoding="utf-8")

    code = banner_main.main(
        [
            "graph",
            "--background",
            str(background),
            "--overlay",
            str(tmp_path / "badge.png"),
            "--partial",
            "--layout",
            str(layout),
        ]
    )

    assert code == 0
    printed = capsys.readouterr().out
    assert "scale=w=310:h=310:flags=lanczos" in printed
    assert "paletteuse" in printed


def test_load_layout_file_accepts_json(tmp_path: Path) -> None:
    path = tmp_path / "layout.json"
    path.write_text('{"overlayOpacity": 0.5}', encoding="utf-8")

    assert banner_main.load_layout_file(str(path)) == {"overlayOpacity": 0.5}
    assert banner_main.load_layout_file(None) == {}


def test_explicit_missing_config_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        banner_main.main(["--config", str(tmp_path / "custom.yaml"), "static"])
    assert excinfo.value.code == 2
