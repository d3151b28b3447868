"""Configuration loader for the banner renderers."""
from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import yaml  # type: ignore
except ModuleNotFoundError as exc:  # pragma: no cover - import guard
    raise RuntimeError(
        "PyYAML is required. Please install it with `pip install pyyaml`."
    ) from exc


DEFAULT_BACKGROUND_CAPACITY = 24
DEFAULT_AVATAR_CAPACITY = 48
DEFAULT_FPS = 15


@dataclass
class AppConfig:
    """Wrapper around raw configuration with resolved paths."""

    raw: Dict[str, Any]
    config_path: Optional[Path]
    project_root: Path
    output_dir: Path
    cache_dir: Path
    temp_dir: Path
    log_file: Optional[Path]

    @classmethod
    def default(cls, project_root: Path | None = None) -> "AppConfig":
        """Configuration used when no config file is present."""
        return _build(raw={}, config_path=None, root=(project_root or Path.cwd()).resolve())

    def section(self, name: str) -> Dict[str, Any]:
        value = self.raw.get(name, {})
        return value if isinstance(value, dict) else {}

    @property
    def logging_level(self) -> str:
        logging_cfg = self.section("logging")
        level = logging_cfg.get("level") or logging_cfg.get("LEVEL") or "INFO"
        return str(level).upper()

    @property
    def ffmpeg_path(self) -> str:
        env_value = os.getenv("FFMPEG_PATH") or os.getenv("FFMPEG_BIN")
        if env_value:
            return env_value
        return str(self.section("ffmpeg").get("path") or "ffmpeg")

    @property
    def fps(self) -> int:
        return _positive_int(self.section("ffmpeg").get("fps"), DEFAULT_FPS)

    @property
    def background_capacity(self) -> int:
        return _positive_int(self.section("cache").get("background_capacity"), DEFAULT_BACKGROUND_CAPACITY)

    @property
    def avatar_capacity(self) -> int:
        return _positive_int(self.section("cache").get("avatar_capacity"), DEFAULT_AVATAR_CAPACITY)

    @property
    def font_overrides(self) -> Dict[str, Optional[str]]:
        fonts = self.section("fonts")
        return {
            "regular": str(fonts["regular"]) if fonts.get("regular") else None,
            "bold": str(fonts["bold"]) if fonts.get("bold") else None,
        }

    def to_debug_dict(self) -> Dict[str, Any]:
        return {
            "config_path": str(self.config_path) if self.config_path else None,
            "output_dir": str(self.output_dir),
            "cache_dir": str(self.cache_dir),
            "temp_dir": str(self.temp_dir),
            "log_file": str(self.log_file) if self.log_file else None,
            "ffmpeg_path": self.ffmpeg_path,
        }

    def dumps(self) -> str:
        """Return a JSON string for diagnostics."""
        return json.dumps(self.to_debug_dict(), ensure_ascii=False, indent=2)


def load_config(path: Path | str, project_root: Path | None = None) -> AppConfig:
    """Load YAML config and resolve key directories."""
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping: {config_path}")

    root = project_root.resolve() if project_root else config_path.parent
    return _build(raw=raw, config_path=config_path, root=root)


def _build(*, raw: Dict[str, Any], config_path: Optional[Path], root: Path) -> AppConfig:
    output_cfg = raw.get("output", {}) if isinstance(raw.get("output"), dict) else {}
    cache_cfg = raw.get("cache", {}) if isinstance(raw.get("cache"), dict) else {}
    ffmpeg_cfg = raw.get("ffmpeg", {}) if isinstance(raw.get("ffmpeg"), dict) else {}
    logging_cfg = raw.get("logging", {}) if isinstance(raw.get("logging"), dict) else {}

    output_dir = (root / output_cfg.get("directory", "output")).resolve()
    cache_dir = (root / cache_cfg.get("directory", "data/cache")).resolve()
    temp_value = ffmpeg_cfg.get("temp_directory")
    # Engine temp files default to the system temp dir
    if temp_value:
        temp_dir = (root / temp_value).resolve()
    else:
        temp_dir = Path(tempfile.gettempdir())
    log_file_name = logging_cfg.get("file")
    log_file = (root / log_file_name).resolve() if log_file_name else None

    return AppConfig(
        raw=raw,
        config_path=config_path,
        project_root=root,
        output_dir=output_dir,
        cache_dir=cache_dir,
        temp_dir=temp_dir,
        log_file=log_file,
    )


def _positive_int(value: object | None, default: int) -> int:
    try:
        if value is None:
            raise ValueError
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default
