from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Sequence

from banner_errors import EngineError, EngineUnavailableError
from logging_utils import get_logger

logger = get_logger(__name__)

STDERR_TAIL_LINES = 50


def ffmpeg_command(args: Sequence[str], *, ffmpeg_path: str = "ffmpeg") -> List[str]:
    # Keep ffmpeg quiet: only errors; no stats; no banner
    return [ffmpeg_path, "-hide_banner", "-loglevel", "error", "-nostats"] + list(args)


def run_ffmpeg(args: Sequence[str], *, ffmpeg_path: str = "ffmpeg", cwd: Path | None = None) -> None:
    """Run ffmpeg with the given arguments, raising ``EngineError`` on non-zero exit.

    Logs the full command for debuggability.
    """
    cmd = ffmpeg_command(args, ffmpeg_path=ffmpeg_path)
    pretty = " ".join(a if " " not in a else f"'{a}'" for a in cmd)
    logger.debug("FFmpeg: %s", pretty)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise EngineUnavailableError(f"ffmpeg could not be started ({ffmpeg_path}): {exc}") from exc
    if proc.returncode != 0:
        tail = (proc.stderr or "").splitlines()[-STDERR_TAIL_LINES:]
        for line in tail:
            logger.error("ffmpeg: %s", line)
        raise EngineError(f"ffmpeg failed with exit code {proc.returncode}", "\n".join(tail))


def probe_ffmpeg(ffmpeg_path: str = "ffmpeg") -> str:
    """Return the first line of ``ffmpeg -version`` or raise ``EngineUnavailableError``."""
    try:
        proc = subprocess.run(
            [ffmpeg_path, "-version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise EngineUnavailableError(f"ffmpeg not found ({ffmpeg_path}): {exc}") from exc
    if proc.returncode != 0:
        raise EngineUnavailableError(f"ffmpeg probe failed with exit code {proc.returncode} ({ffmpeg_path})")
    version = (proc.stdout or "").splitlines()[0] if proc.stdout else ffmpeg_path
    logger.debug("FFmpeg available: %s", version)
    return version


__all__ = ["ffmpeg_command", "probe_ffmpeg", "run_ffmpeg"]
