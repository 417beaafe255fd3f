"""Translate normalized interaction events into desired-view mutations."""

from __future__ import annotations

import logging
import math
from collections.abc import MutableMapping
from typing import Any, Optional

from mandelbrot_viewer.client.config import ViewerConfig
from mandelbrot_viewer.client.debug_channel import DebugChannel
from mandelbrot_viewer.client.scheduler import Scheduler
from mandelbrot_viewer.view.view_state import ViewState

logger = logging.getLogger(__name__)

GestureEvent = MutableMapping[str, Any]

# Wheel delta units as reported by the event source.
DELTA_PIXEL = 0
DELTA_LINE = 1
DELTA_PAGE = 2


def prevent_default(event: GestureEvent) -> None:
    """Mark the event as owned by the viewer; the input filter consumes it."""
    event["default_prevented"] = True


def _finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def wheel_sluggishness(config: ViewerConfig, delta_mode: int) -> float:
    if delta_mode == DELTA_PIXEL:
        return float(config.wheel_sluggishness_pixels)
    if delta_mode == DELTA_LINE:
        return float(config.wheel_sluggishness_lines)
    return float(config.wheel_sluggishness_pages)


class GestureTranslator:
    """Apply drag, pinch and wheel events to the shared desired view.

    The translator is the only writer of ``desired``. It has no return
    values; malformed events are ignored.
    """

    def __init__(
        self,
        desired: ViewState,
        *,
        scheduler: Scheduler,
        config: ViewerConfig,
        debug: Optional[DebugChannel] = None,
    ) -> None:
        if config.zoom_sluggishness <= 0:
            raise ValueError("zoom sluggishness must be positive")
        self._desired = desired
        self._scheduler = scheduler
        self._config = config
        self._debug = debug or DebugChannel()
        self._log_input = bool(config.input_log)
        # Suppresses click-triggered actions in external collaborators.
        self.dragging = False
        self._handlers = {
            "input.dragstart": self.on_drag_start,
            "input.dragmove": self.on_drag_move,
            "input.dragend": self.on_drag_end,
            "input.gesturemove": self.on_gesture_move,
            "input.touchmove": self.on_touch_move,
            "input.wheel": self.on_wheel,
        }

    @property
    def desired(self) -> ViewState:
        return self._desired

    def set_logging(self, enabled: bool) -> None:
        self._log_input = bool(enabled)

    # ------------------------------------------------------------------ dispatch
    def handle(self, event: GestureEvent) -> None:
        handler = self._handlers.get(str(event.get("type") or ""))
        if handler is None:
            return
        handler(event)

    # ------------------------------------------------------------------ drag
    def on_drag_start(self, event: GestureEvent) -> None:
        prevent_default(event)
        self.dragging = True

    def on_drag_end(self, event: GestureEvent) -> None:
        prevent_default(event)
        # Clicks synthesized on release are still delivered before this runs.
        self._scheduler.call_soon(self._clear_dragging)

    def _clear_dragging(self) -> None:
        self.dragging = False

    def on_drag_move(self, event: GestureEvent) -> None:
        prevent_default(event)
        self._debug.message(f"DragMove: e = {dict(event)}")
        dx = _finite(event.get("dx"))
        dy = _finite(event.get("dy"))
        try:
            buttons = int(event.get("buttons") or 0)
        except (TypeError, ValueError):
            buttons = 0
        if (buttons & int(self._config.zoom_button_mask)) != 0:
            if dy is None:
                return
            amount = dy / float(self._config.zoom_sluggishness)
            self._desired.zoom_by(amount)
            if self._log_input:
                logger.info("drag+zoom-button->zoom_by %.4f", amount)
            return
        if dx is None or dy is None:
            return
        self._desired.pan_by(dx, dy)
        if self._log_input:
            logger.info("drag->pan_by dx=%.1f dy=%.1f", dx, dy)

    # ------------------------------------------------------------------ pinch / touch
    def on_gesture_move(self, event: GestureEvent) -> None:
        prevent_default(event)
        ds = _finite(event.get("ds"))
        self._debug.message(f"OnMove: e = {event.get('ds')}")
        if ds is None:
            return
        # Approximate: the gesture's scale delta is applied as-is.
        desired = self._desired
        before_scale = getattr(desired, "scale", None)
        before_zoom = getattr(desired, "zoom_level", None)
        desired.scale_by(1.0 + ds)
        self._debug.message(
            f"  Scale: before: {before_scale}, after: {getattr(desired, 'scale', None)}"
        )
        self._debug.message(
            f"  Zoom:  before: {before_zoom}, after: {getattr(desired, 'zoom_level', None)}"
        )

    def on_touch_move(self, event: GestureEvent) -> None:
        # Only here to stop pull-to-refresh/scroll; no view change.
        self._debug.message(f"TouchMove: e = {dict(event)}")
        prevent_default(event)

    # ------------------------------------------------------------------ wheel
    def on_wheel(self, event: GestureEvent) -> None:
        self._debug.message(f"Wheel: e = {dict(event)}")
        prevent_default(event)
        delta_y = _finite(event.get("delta_y"))
        if delta_y is None or event.get("delta_mode") is None:
            return
        try:
            delta_mode = int(event["delta_mode"])
        except (TypeError, ValueError):
            return
        amount = -delta_y / wheel_sluggishness(self._config, delta_mode)
        self._desired.zoom_by(amount)
        if self._log_input:
            logger.info("wheel mode=%d dy=%.2f->zoom_by %.4f", delta_mode, delta_y, amount)


__all__ = [
    "DELTA_LINE",
    "DELTA_PAGE",
    "DELTA_PIXEL",
    "GestureEvent",
    "GestureTranslator",
    "prevent_default",
    "wheel_sluggishness",
]
