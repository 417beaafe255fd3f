"""Environment-derived configuration for the full-image viewer."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, TypeVar

_T = TypeVar("_T")

_TRUE_WORDS = frozenset(("1", "true", "yes", "on"))
_FALSE_WORDS = frozenset(("0", "false", "no", "off"))


def _env_raw(name: str) -> Optional[str]:
    """Stripped value of ``name``; unset and blank both read as ``None``."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_parsed(name: str, parse: Callable[[str], _T], default: _T) -> _T:
    raw = _env_raw(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    """Read an on/off switch; unrecognized words keep ``default``."""
    raw = _env_raw(name)
    if raw is None:
        return default
    word = raw.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return default


def _positive_float(name: str, default: float) -> float:
    value = float(_env_parsed(name, float, default))
    return value if value > 0.0 else float(default)


def _non_negative_float(name: str, default: float) -> float:
    return max(0.0, float(_env_parsed(name, float, default)))


@dataclass(frozen=True)
class ViewerConfig:
    """Resolved toggles for ``FullImageViewer`` and its collaborators."""

    # Gesture sensitivity (larger sluggishness => smaller view change)
    zoom_button_mask: int = 4
    zoom_sluggishness: float = 30.0
    wheel_sluggishness_pixels: float = 200.0
    wheel_sluggishness_lines: float = 10.0
    wheel_sluggishness_pages: float = 1.0
    wheel_lines_per_notch: float = 3.0

    # Synchronizer cadence
    poll_interval_s: float = 0.05
    fetch_timeout_s: float = 30.0
    view_tolerance: float = 0.0

    # Outbound fetch
    image_path: str = "/img"
    image_query: Optional[str] = None

    # Diagnostics
    fetch_log: bool = False
    input_log: bool = False


def load_viewer_config() -> ViewerConfig:
    """Resolve ``MANDELBROT_VIEWER_*`` environment variables into a config."""

    zoom_button_mask = int(_env_parsed("MANDELBROT_VIEWER_ZOOM_BUTTON_MASK", int, 4))
    if zoom_button_mask <= 0:
        zoom_button_mask = 4

    zoom_sluggishness = _positive_float("MANDELBROT_VIEWER_ZOOM_SLUGGISHNESS", 30.0)
    wheel_pixels = _positive_float("MANDELBROT_VIEWER_WHEEL_SLUGGISHNESS_PIXELS", 200.0)
    wheel_lines = _positive_float("MANDELBROT_VIEWER_WHEEL_SLUGGISHNESS_LINES", 10.0)
    wheel_pages = _positive_float("MANDELBROT_VIEWER_WHEEL_SLUGGISHNESS_PAGES", 1.0)
    wheel_lines_per_notch = _positive_float("MANDELBROT_VIEWER_WHEEL_LINES_PER_NOTCH", 3.0)

    poll_interval_ms = max(1.0, _non_negative_float("MANDELBROT_VIEWER_POLL_MS", 50.0))
    fetch_timeout_s = _non_negative_float("MANDELBROT_VIEWER_FETCH_TIMEOUT_S", 30.0)
    view_tolerance = _non_negative_float("MANDELBROT_VIEWER_VIEW_TOLERANCE", 0.0)

    image_path = _env_raw("MANDELBROT_VIEWER_IMAGE_PATH") or "/img"
    if not image_path.startswith("/"):
        image_path = "/" + image_path
    image_query = _env_raw("MANDELBROT_VIEWER_IMAGE_QUERY")

    return ViewerConfig(
        zoom_button_mask=zoom_button_mask,
        zoom_sluggishness=zoom_sluggishness,
        wheel_sluggishness_pixels=wheel_pixels,
        wheel_sluggishness_lines=wheel_lines,
        wheel_sluggishness_pages=wheel_pages,
        wheel_lines_per_notch=wheel_lines_per_notch,
        poll_interval_s=poll_interval_ms / 1000.0,
        fetch_timeout_s=fetch_timeout_s,
        view_tolerance=view_tolerance,
        image_path=image_path,
        image_query=image_query,
        fetch_log=env_bool("MANDELBROT_VIEWER_FETCH_LOG", False),
        input_log=env_bool("MANDELBROT_VIEWER_INPUT_LOG", False),
    )


__all__ = ["ViewerConfig", "env_bool", "load_viewer_config"]
