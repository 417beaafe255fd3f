"""Optional debug log region gated by a process-wide flag."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from mandelbrot_viewer.client.config import env_bool

logger = logging.getLogger(__name__)

_debug_enabled: bool = env_bool("MANDELBROT_VIEWER_DEBUG", False)


def set_debug_enabled(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


def debug_enabled() -> bool:
    return _debug_enabled


class DebugSink(Protocol):
    def appendPlainText(self, text: str) -> None: ...  # noqa: N802


class DebugChannel:
    """Append free-form diagnostic lines to a log region when debugging.

    The sink is usually a ``QPlainTextEdit``; any object exposing
    ``appendPlainText`` works. With the flag off every call is a no-op.
    """

    def __init__(self, sink: Optional[DebugSink] = None) -> None:
        self._sink = sink

    def attach(self, sink: Optional[DebugSink]) -> None:
        self._sink = sink

    @property
    def active(self) -> bool:
        return _debug_enabled and self._sink is not None

    def message(self, msg: str) -> None:
        if not _debug_enabled:
            return
        logger.debug("%s", msg)
        sink = self._sink
        if sink is None:
            return
        sink.appendPlainText(str(msg))


__all__ = ["DebugChannel", "DebugSink", "debug_enabled", "set_debug_enabled"]
