"""View-state contract and the Mandelbrot geometry backend."""

from .view_state import DEFAULT_BASE_SPAN, MandelbrotView, ViewState

__all__ = ["DEFAULT_BASE_SPAN", "MandelbrotView", "ViewState"]
