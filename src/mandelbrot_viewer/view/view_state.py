"""View-state value types shared by the gesture translator and synchronizer."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ViewState(Protocol):
    """Capability contract the viewer core relies on.

    Any coordinate-transform backend works as long as it can be panned,
    zoomed, scaled, compared, snapshotted and serialized.
    """

    def pan_by(self, dx: float, dy: float) -> None: ...

    def zoom_by(self, amount: float) -> None: ...

    def scale_by(self, factor: float) -> None: ...

    def equals(self, other: Optional["ViewState"], tolerance: float = 0.0) -> bool: ...

    def copy(self) -> "ViewState": ...

    def url_params_json(self) -> str: ...


DEFAULT_BASE_SPAN = 4.0


@dataclass
class MandelbrotView:
    """Mutable view of the complex plane rendered at ``width`` x ``height``.

    Magnification is ``2 ** zoom_level * scale``. ``scale`` is kept in
    ``[1, 2)``; whole powers of two are folded into ``zoom_level``.
    """

    center_x: float = 0.0
    center_y: float = 0.0
    zoom_level: float = 0.0
    scale: float = 1.0
    width: int = 512
    height: int = 512
    base_span: float = DEFAULT_BASE_SPAN

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("view dimensions must be positive")
        if not (self.scale > 0.0 and math.isfinite(self.scale)):
            raise ValueError("scale must be a positive finite number")
        self.width = int(self.width)
        self.height = int(self.height)
        self._normalize_scale()

    # ------------------------------------------------------------------ geometry
    @property
    def magnification(self) -> float:
        return float(2.0 ** self.zoom_level * self.scale)

    @property
    def pixel_size(self) -> float:
        """Plane units covered by one screen pixel."""
        return float(self.base_span) / float(self.width) / self.magnification

    def pan_by(self, dx: float, dy: float) -> None:
        # Content follows the pointer: dragging right moves the center left.
        # Screen y grows downward while the plane's imaginary axis grows up.
        step = self.pixel_size
        self.center_x -= float(dx) * step
        self.center_y += float(dy) * step

    def zoom_by(self, amount: float) -> None:
        amount = float(amount)
        if not math.isfinite(amount):
            return
        self.zoom_level += amount

    def scale_by(self, factor: float) -> None:
        factor = float(factor)
        if not (factor > 0.0 and math.isfinite(factor)):
            return
        self.scale *= factor
        self._normalize_scale()

    def _normalize_scale(self) -> None:
        steps = math.floor(math.log2(self.scale))
        if steps:
            self.zoom_level += steps
            self.scale /= 2.0 ** steps
        # Guard against log2 rounding right at the boundaries.
        if self.scale >= 2.0:
            self.scale /= 2.0
            self.zoom_level += 1
        elif self.scale < 1.0:
            self.scale *= 2.0
            self.zoom_level -= 1

    # ------------------------------------------------------------------ value semantics
    def equals(self, other: Optional[ViewState], tolerance: float = 0.0) -> bool:
        if not isinstance(other, MandelbrotView):
            return False
        if self.width != other.width or self.height != other.height:
            return False
        tol = max(0.0, float(tolerance))
        pairs = (
            (self.center_x, other.center_x),
            (self.center_y, other.center_y),
            (self.zoom_level, other.zoom_level),
            (self.scale, other.scale),
            (self.base_span, other.base_span),
        )
        if tol == 0.0:
            return all(a == b for a, b in pairs)
        return all(math.isclose(a, b, rel_tol=tol, abs_tol=tol) for a, b in pairs)

    def copy(self) -> MandelbrotView:
        return replace(self)

    def url_params(self) -> list[float]:
        return [
            float(self.center_x),
            float(self.center_y),
            float(self.zoom_level),
            float(self.scale),
            int(self.width),
            int(self.height),
        ]

    def url_params_json(self) -> str:
        return json.dumps(self.url_params(), separators=(",", ":"))


__all__ = [
    "DEFAULT_BASE_SPAN",
    "MandelbrotView",
    "ViewState",
]
