"""Timer scheduling for the viewer's cooperative event loop."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional, Protocol

from qtpy import QtCore

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Run callables later on the same (single) thread of control."""

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle: ...

    def call_soon(self, fn: Callable[[], None]) -> TimerHandle: ...


class QtTimerHandle:
    """Single-shot ``QTimer`` wrapper that can be cancelled before it fires."""

    def __init__(self, owner: QtScheduler, timer: QtCore.QTimer) -> None:
        self._owner = owner
        self._timer: Optional[QtCore.QTimer] = timer

    @property
    def active(self) -> bool:
        return self._timer is not None and bool(self._timer.isActive())

    def cancel(self) -> None:
        timer = self._release()
        if timer is not None:
            timer.stop()

    def _release(self) -> Optional[QtCore.QTimer]:
        timer = self._timer
        self._timer = None
        self._owner._pending.discard(self)
        if timer is not None:
            timer.deleteLater()
        return timer


class QtScheduler:
    """Schedule callbacks on the GUI thread through single-shot QTimers.

    Handles stay referenced until they fire or are cancelled so that
    fire-and-forget callers (``call_soon``) do not lose their timer to GC.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        app = QtCore.QCoreApplication.instance()
        assert app is not None, "Qt application instance must exist"
        self._parent = parent
        self._pending: set[QtTimerHandle] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> QtTimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setTimerType(QtCore.Qt.PreciseTimer)  # type: ignore[attr-defined]
        handle = QtTimerHandle(self, timer)
        self._pending.add(handle)

        def _fire() -> None:
            if handle._release() is None:
                return
            try:
                fn()
            except Exception:
                logger.exception("scheduled callback failed")

        timer.timeout.connect(_fire)  # type: ignore[attr-defined]
        timer.start(max(0, int(round(float(delay_s) * 1000.0))))
        return handle

    def call_soon(self, fn: Callable[[], None]) -> QtTimerHandle:
        return self.call_later(0.0, fn)

    def cancel_all(self) -> None:
        for handle in list(self._pending):
            handle.cancel()


__all__ = ["QtScheduler", "QtTimerHandle", "Scheduler", "TimerHandle"]
