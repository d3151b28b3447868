"""Exception types shared by the banner renderers."""
from __future__ import annotations


class BannerError(RuntimeError):
    """Base class for every failure a render call can surface."""


class DownloadError(BannerError):
    """A remote avatar/background could not be fetched."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        message = f"Download failed: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MissingBackgroundError(BannerError, FileNotFoundError):
    """An explicitly requested background path does not exist."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Background not found: {path}")


class EngineUnavailableError(BannerError):
    """The ffmpeg binary could not be invoked at all."""


class EngineError(BannerError):
    """ffmpeg ran but failed or produced unusable output."""

    def __init__(self, message: str, stderr_tail: str = "") -> None:
        self.stderr_tail = stderr_tail
        super().__init__(message)


class FilterGraphError(BannerError, ValueError):
    """A filter graph was wired incorrectly."""


class DanglingPadError(FilterGraphError):
    """A node consumes a pad that no earlier node produced."""


class DuplicatePadError(FilterGraphError):
    """Two nodes produce the same pad name."""


__all__ = [
    "BannerError",
    "DownloadError",
    "MissingBackgroundError",
    "EngineUnavailableError",
    "EngineError",
    "FilterGraphError",
    "DanglingPadError",
    "DuplicatePadError",
]
