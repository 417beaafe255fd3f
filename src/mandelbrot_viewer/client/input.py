from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from qtpy import QtCore, QtWidgets  # type: ignore

from mandelbrot_viewer.client.gestures import DELTA_LINE, DELTA_PIXEL, GestureEvent

logger = logging.getLogger(__name__)

# Qt's Left/Right/Middle button bits coincide with the DOM ``buttons`` mask.
_DOM_BUTTON_BITS = 0x7
# angleDelta is in 1/8 deg units, typical step is 120 per notch
_ANGLE_PER_NOTCH = 120.0


def _pointer_xy(event) -> tuple[float, float]:  # type: ignore[no-untyped-def]
    """Return pointer coordinates, asserting the Qt event exposes them."""

    if hasattr(event, 'position'):
        pos = event.position()
        assert pos is not None, "pointer event returned None from position()"
        return float(pos.x()), float(pos.y())
    assert hasattr(event, 'pos'), "pointer event missing position()/pos()"
    pos = event.pos()
    assert pos is not None, "pointer event returned None from pos()"
    return float(pos.x()), float(pos.y())


def dom_buttons(qt_buttons: int) -> int:
    return int(qt_buttons) & _DOM_BUTTON_BITS


def wheel_payload(pixel_y: int, angle_y: int, *, lines_per_notch: float) -> GestureEvent:
    """Normalize Qt wheel deltas into a browser-style ``deltaY``/``deltaMode`` pair.

    Qt reports positive values when scrolling away from the user; the
    normalized ``delta_y`` is positive when scrolling toward the user.
    Precise (trackpad) devices report pixels, notched wheels report lines.
    """

    msg: GestureEvent = {'type': 'input.wheel'}
    if pixel_y:
        msg['delta_y'] = -float(pixel_y)
        msg['delta_mode'] = DELTA_PIXEL
    elif angle_y:
        msg['delta_y'] = -float(angle_y) / _ANGLE_PER_NOTCH * float(lines_per_notch)
        msg['delta_mode'] = DELTA_LINE
    return msg


class _EventFilter(QtCore.QObject):  # type: ignore[misc]
    """Qt event filter turning raw surface events into normalized gestures.

    - Mouse press/move/release with a button held become drag start/move/end.
      Press and release are consumed as a pair, so the widget never sees
      half of a click.
    - Wheel, pinch (native zoom or touchscreen ``QPinchGesture``) and touch
      updates are forwarded as-is.
    - Events the handler marks ``default_prevented`` are consumed.
    """

    def __init__(
        self,
        widget: QtWidgets.QWidget,  # type: ignore[valid-type]
        on_event: Callable[[GestureEvent], None],
        *,
        lines_per_notch: float = 3.0,
        log_info: bool = False,
    ) -> None:
        super().__init__(widget)
        self._widget = widget
        self._on_event = on_event
        self._lines_per_notch = float(lines_per_notch)
        self._log_info = bool(log_info)
        self._pressed = False
        self._dragging = False
        self._last_xy: tuple[float, float] = (0.0, 0.0)

    def eventFilter(self, obj, event):  # type: ignore[no-untyped-def]
        if obj is not self._widget:
            return False
        event_type = event.type()

        if event_type == QtCore.QEvent.Wheel:  # type: ignore[attr-defined]
            angle_delta = event.angleDelta()
            pixel_delta = event.pixelDelta()
            msg = wheel_payload(
                int(pixel_delta.y()),
                int(angle_delta.y()),
                lines_per_notch=self._lines_per_notch,
            )
            return self._forward(event, msg)

        if event_type == QtCore.QEvent.MouseButtonPress:  # type: ignore[attr-defined]
            self._pressed = True
            self._dragging = False
            self._last_xy = _pointer_xy(event)
            event.accept()
            return True

        if event_type == QtCore.QEvent.MouseMove:  # type: ignore[attr-defined]
            return self._handle_mouse_move(event)

        if event_type == QtCore.QEvent.MouseButtonRelease:  # type: ignore[attr-defined]
            return self._handle_mouse_up(event)

        if event_type == QtCore.QEvent.NativeGesture:  # type: ignore[attr-defined]
            if event.gestureType() != QtCore.Qt.ZoomNativeGesture:  # type: ignore[attr-defined]
                return False
            return self._forward(event, {'type': 'input.gesturemove', 'ds': float(event.value())})

        if event_type == QtCore.QEvent.Gesture:  # type: ignore[attr-defined]
            # Touchscreen pinch (Linux/Windows); scaleFactor is relative to the last update.
            pinch = event.gesture(QtCore.Qt.PinchGesture)  # type: ignore[attr-defined]
            if pinch is None:
                return False
            ds = float(pinch.scaleFactor()) - 1.0
            return self._forward(event, {'type': 'input.gesturemove', 'ds': ds})

        if event_type == QtCore.QEvent.TouchUpdate:  # type: ignore[attr-defined]
            return self._forward(event, {'type': 'input.touchmove'})

        return False

    # --- Mouse -> drag ------------------------------------------------------------
    def _handle_mouse_move(self, ev) -> bool:  # type: ignore[no-untyped-def]
        if not self._pressed:
            return False
        x, y = _pointer_xy(ev)
        lx, ly = self._last_xy
        self._last_xy = (x, y)
        if not self._dragging:
            self._dragging = True
            self._on_event({'type': 'input.dragstart'})
        msg = {
            'type': 'input.dragmove',
            'dx': x - lx,
            'dy': y - ly,
            'buttons': dom_buttons(int(ev.buttons())),
        }
        return self._forward(ev, msg)

    def _handle_mouse_up(self, ev) -> bool:  # type: ignore[no-untyped-def]
        if not self._pressed:
            return False
        if int(ev.buttons()) & _DOM_BUTTON_BITS:
            # Another button is still down; the drag continues.
            ev.accept()
            return True
        self._pressed = False
        if self._dragging:
            self._dragging = False
            self._forward(ev, {'type': 'input.dragend'})
        # The matching press was consumed, so the release is too.
        ev.accept()
        return True

    def _forward(self, ev, msg: GestureEvent) -> bool:  # type: ignore[no-untyped-def]
        if self._log_info:
            logger.info("%s: %s", msg.get('type'), {k: v for k, v in msg.items() if k != 'type'})
        self._on_event(msg)
        if msg.get('default_prevented'):
            ev.accept()
            return True
        return False


class InputSender:
    """Attach gesture normalization to the image surface widget."""

    def __init__(
        self,
        widget: QtWidgets.QWidget,  # type: ignore[valid-type]
        on_event: Callable[[GestureEvent], None],
        *,
        lines_per_notch: float = 3.0,
        log_info: bool = False,
    ) -> None:
        self._widget = widget
        self._filter: Optional[_EventFilter] = _EventFilter(
            widget,
            on_event,
            lines_per_notch=lines_per_notch,
            log_info=log_info,
        )

    def start(self) -> None:
        assert self._filter is not None, "input sender already stopped"
        self._widget.setAttribute(QtCore.Qt.WA_AcceptTouchEvents, True)  # type: ignore[attr-defined]
        self._widget.grabGesture(QtCore.Qt.PinchGesture)  # type: ignore[attr-defined]
        self._widget.installEventFilter(self._filter)

    def stop(self) -> None:
        event_filter = self._filter
        self._filter = None
        if event_filter is None:
            return
        self._widget.removeEventFilter(event_filter)
        self._widget.ungrabGesture(QtCore.Qt.PinchGesture)  # type: ignore[attr-defined]
        event_filter.deleteLater()
