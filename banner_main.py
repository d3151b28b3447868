"""Command line entry for the banner renderers."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from asset_cache import AssetStore, BannerCaches
from banner_errors import BannerError
from banner_ffmpeg.animated import AnimatedBannerComposer
from banner_ffmpeg.builder import build_banner_graph
from banner_layout import Layout, layout_to_dict, resolve_layout
from banner_render.composer import BannerComposer
from banner_render.fonts import FontResolver
from banner_render.text_markup import build_text_layer_svg
from config_loader import AppConfig, load_config
from logging_utils import configure_logging, get_logger
from welcome_loop.encoder import WelcomeLoopEncoder
from welcome_loop.frames import WelcomeFrameRenderer, WelcomeSettings

logger = get_logger(__name__)

DEFAULT_CONFIG = "config.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render static, animated and welcome banners")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG}; built-in defaults when absent)",
    )
    parser.add_argument("--log-level", help="Override the configured log level (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    def text_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--title", default="", help="Title line")
        p.add_argument("--subtitle", default="", help="Subtitle line")
        p.add_argument("--avatar", help="Avatar path or URL")
        p.add_argument("--layout", help="Layout file (JSON or YAML)")
        p.add_argument("--output", help="Output file (default: under the configured output directory)")

    static = sub.add_parser("static", help="Full composite PNG with rounded corners")
    static.add_argument("--background", help="Background path or URL (default: gradient)")
    text_args(static)

    overlay = sub.add_parser("overlay", help="Transparent overlay PNG (avatar + text)")
    overlay.add_argument("--svg", action="store_true", help="Write the text layer as SVG instead")
    text_args(overlay)

    animated = sub.add_parser("animated", help="Animated GIF banner via ffmpeg")
    animated.add_argument("--background", required=True, help="Background file (GIF or video)")
    text_args(animated)

    welcome = sub.add_parser("welcome", help="Welcome loop GIF without ffmpeg")
    welcome.add_argument("--username", required=True, help="Name shown under the title")
    welcome.add_argument("--avatar", help="Avatar path or URL")
    welcome.add_argument("--title", help="Title text (default from config)")
    welcome.add_argument("--background", help="Background image or GIF (default from config)")
    welcome.add_argument("--frames", type=int, help="Frame count (default from config)")
    welcome.add_argument("--delay", type=int, help="Frame delay in milliseconds (default from config)")
    welcome.add_argument("--output", help="Output file")

    graph = sub.add_parser("graph", help="Print the ffmpeg filter graph")
    graph.add_argument("--background", required=True, help="Background file")
    graph.add_argument("--overlay", help="Overlay PNG (omit to burn text in with drawtext)")
    graph.add_argument(
        "--partial",
        action="store_true",
        help="Treat the overlay as an avatar-only badge and draw text with ffmpeg",
    )
    graph.add_argument("--title", default="", help="Title line")
    graph.add_argument("--subtitle", default="", help="Subtitle line")
    graph.add_argument("--layout", help="Layout file (JSON or YAML)")
    return parser


def load_layout_file(path: Optional[str]) -> Dict[str, Any]:
    """Read a layout payload from JSON or YAML; an absent path means defaults."""
    if not path:
        return {}
    layout_path = Path(path).expanduser()
    text = layout_path.read_text(encoding="utf-8")
    if layout_path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Layout root must be a mapping: {layout_path}")
    return data


def _load_app_config(path: str) -> AppConfig:
    config_path = Path(path).expanduser()
    if not config_path.exists() and path == DEFAULT_CONFIG:
        return AppConfig.default()
    return load_config(config_path, project_root=Path.cwd())


def _output_path(config: AppConfig, requested: Optional[str], default_name: str) -> Path:
    path = Path(requested).expanduser() if requested else config.output_dir / default_name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _write(path: Path, payload: bytes) -> Dict[str, Any]:
    path.write_bytes(payload)
    logger.info("Banner saved to: %s (%d bytes)", path, len(payload))
    return {"output": str(path), "bytes": len(payload)}


def _layout_summary(summary: Dict[str, Any], layout: Layout) -> Dict[str, Any]:
    summary["layout"] = layout_to_dict(layout)
    return summary


def run_command(args: argparse.Namespace, config: AppConfig) -> Dict[str, Any]:
    fonts = FontResolver(
        regular_override=config.font_overrides["regular"],
        bold_override=config.font_overrides["bold"],
    )
    assets = AssetStore(config.cache_dir)
    caches = BannerCaches.with_capacity(config.background_capacity, config.avatar_capacity)
    composer = BannerComposer(caches=caches, assets=assets, fonts=fonts)

    if args.command == "welcome":
        settings = WelcomeSettings.from_section(config.section("welcome"), config.project_root)
        background = Path(args.background).expanduser() if args.background else settings.background
        encoder = WelcomeLoopEncoder(WelcomeFrameRenderer(assets, fonts=fonts))
        payload = encoder.encode_loop(
            args.username,
            args.avatar,
            args.frames or settings.frame_count,
            args.delay or settings.frame_delay_ms,
            title=args.title or settings.title,
            background=background,
        )
        suffix = ".gif" if payload.startswith(b"GIF") else ".png"
        return _write(_output_path(config, args.output, f"welcome{suffix}"), payload)

    layout = resolve_layout(load_layout_file(args.layout))

    if args.command == "graph":
        graph = build_banner_graph(
            args.background,
            args.overlay,
            layout,
            args.title,
            args.subtitle,
            full_overlay=not args.partial,
            fps=config.fps,
            fonts=fonts,
        )
        print(graph.render())
        return {"nodes": len(graph), "filters": graph.names()}

    if args.command == "static":
        payload = composer.compose_full(args.background, args.title, args.subtitle, args.avatar, layout)
        return _layout_summary(_write(_output_path(config, args.output, "banner.png"), payload), layout)

    if args.command == "overlay":
        if args.svg:
            svg = build_text_layer_svg(layout, args.title, args.subtitle)
            return _layout_summary(_write(_output_path(config, args.output, "banner_text.svg"), svg.encode("utf-8")), layout)
        payload = composer.compose_overlay(args.title, args.subtitle, args.avatar, layout)
        return _layout_summary(_write(_output_path(config, args.output, "banner_overlay.png"), payload), layout)

    animated = AnimatedBannerComposer(
        composer,
        ffmpeg_path=config.ffmpeg_path,
        temp_dir=config.temp_dir,
        fps=config.fps,
    )
    payload = animated.compose_animated(args.background, args.title, args.subtitle, args.avatar, layout)
    return _layout_summary(_write(_output_path(config, args.output, "banner.gif"), payload), layout)


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_app_config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        parser.error(str(exc))

    configure_logging(args.log_level or config.logging_level, config.log_file)
    logger.debug("Config: %s", config.dumps())

    try:
        summary = run_command(args, config)
    except BannerError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    except (OSError, ValueError, yaml.YAMLError) as exc:
        # Unreadable layout files and similar input problems
        logger.error("%s failed: %s", args.command, exc)
        return 1

    if args.command != "graph":
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
