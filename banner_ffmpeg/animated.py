"""Animated banner composition through ffmpeg.

The overlay (avatar badge + text) is rendered by the raster composer so the
animated banner matches the static preview, written to a temp PNG and laid
over the animated background by ffmpeg. Both temp files are removed on every
exit path.
"""
from __future__ import annotations

import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from PIL import Image, UnidentifiedImageError

from banner_errors import EngineError, MissingBackgroundError
from banner_layout import Layout, resolve_layout
from banner_render.composer import BannerComposer
from config_loader import DEFAULT_FPS
from logging_utils import get_logger

from .builder import OUTPUT_PAD, build_banner_graph
from .runner import probe_ffmpeg, run_ffmpeg

logger = get_logger(__name__)

GIF_MAGIC = (b"GIF87a", b"GIF89a")


class AnimatedBannerComposer:
    def __init__(
        self,
        composer: BannerComposer,
        *,
        ffmpeg_path: str = "ffmpeg",
        temp_dir: Optional[Path] = None,
        fps: int = DEFAULT_FPS,
    ) -> None:
        self.composer = composer
        self.ffmpeg_path = ffmpeg_path
        self.temp_dir = temp_dir
        self.fps = fps

    def compose_animated(
        self,
        background_path: Union[str, Path],
        title: str,
        subtitle: str,
        avatar_source: Optional[str] = None,
        layout: Union[Layout, Mapping[str, Any], None] = None,
    ) -> bytes:
        """Return the bytes of a looping GIF banner.

        Raises ``EngineUnavailableError`` when ffmpeg cannot be probed,
        ``MissingBackgroundError`` for a missing background and ``EngineError``
        when ffmpeg fails or writes something that is not a GIF.
        """
        probe_ffmpeg(self.ffmpeg_path)
        if not background_path or not Path(background_path).expanduser().is_file():
            raise MissingBackgroundError(background_path)

        resolved = layout if isinstance(layout, Layout) else resolve_layout(layout, self.composer.canvas)
        temp_files: List[Path] = []
        try:
            overlay_path = self._temp_path("banner_text_", ".png", temp_files)
            overlay_path.write_bytes(self.composer.compose_overlay(title, subtitle, avatar_source, resolved))
            output_path = self._temp_path("banner_out_", ".gif", temp_files)

            graph = build_banner_graph(
                background_path,
                overlay_path,
                resolved,
                title,
                subtitle,
                full_overlay=True,
                fps=self.fps,
                fonts=self.composer.fonts,
                canvas=self.composer.canvas,
            )
            run_ffmpeg(
                [
                    "-y",
                    "-i",
                    str(background_path),
                    "-i",
                    str(overlay_path),
                    "-filter_complex",
                    graph.render(),
                    "-map",
                    f"[{OUTPUT_PAD}]",
                    "-loop",
                    "0",
                    "-f",
                    "gif",
                    str(output_path),
                ],
                ffmpeg_path=self.ffmpeg_path,
            )
            payload = output_path.read_bytes()
            _check_gif(payload)
            logger.info("Animated banner rendered: %d bytes", len(payload))
            return payload
        finally:
            for path in temp_files:
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    logger.warning("Could not remove temp file %s: %s", path, exc)

    def _temp_path(self, prefix: str, suffix: str, registry: List[Path]) -> Path:
        directory = str(self.temp_dir) if self.temp_dir else None
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
        os.close(fd)
        path = Path(name)
        registry.append(path)
        return path


def _check_gif(payload: bytes) -> None:
    if not payload or not payload.startswith(GIF_MAGIC):
        raise EngineError("ffmpeg produced no GIF output")
    try:
        with Image.open(BytesIO(payload)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise EngineError(f"ffmpeg produced an unreadable GIF: {exc}") from exc


__all__ = ["AnimatedBannerComposer", "GIF_MAGIC"]
