from __future__ import annotations

import json
import math

import pytest

from mandelbrot_viewer.view.view_state import MandelbrotView, ViewState


def test_mandelbrot_view_satisfies_protocol() -> None:
    assert isinstance(MandelbrotView(), ViewState)


def test_pan_moves_center_against_drag_direction() -> None:
    view = MandelbrotView(width=400, height=400)
    step = view.pixel_size
    assert step == pytest.approx(4.0 / 400)

    view.pan_by(10, 0)
    assert view.center_x == pytest.approx(-10 * step)
    assert view.center_y == pytest.approx(0.0)

    view.pan_by(0, 20)
    assert view.center_y == pytest.approx(20 * step)


def test_pan_step_shrinks_with_zoom() -> None:
    view = MandelbrotView(width=400, height=400, zoom_level=3.0)

    view.pan_by(8, 0)

    assert view.center_x == pytest.approx(-8 * 4.0 / 400 / 8.0)


def test_zoom_by_accumulates_fractional_levels() -> None:
    view = MandelbrotView()

    view.zoom_by(0.25)
    view.zoom_by(-1.0)

    assert view.zoom_level == pytest.approx(-0.75)
    assert view.scale == 1.0


def test_zoom_by_ignores_non_finite_amount() -> None:
    view = MandelbrotView()

    view.zoom_by(math.inf)
    view.zoom_by(math.nan)

    assert view.zoom_level == 0.0


def test_scale_by_folds_powers_of_two_into_zoom_level() -> None:
    view = MandelbrotView()

    view.scale_by(3.0)
    assert view.zoom_level == pytest.approx(1.0)
    assert view.scale == pytest.approx(1.5)

    view.scale_by(0.25)
    assert view.zoom_level == pytest.approx(-1.0)
    assert view.scale == pytest.approx(1.5)
    assert view.magnification == pytest.approx(0.75)


@pytest.mark.parametrize("factor", [0.0, -2.0, math.nan, math.inf])
def test_scale_by_ignores_invalid_factor(factor) -> None:
    view = MandelbrotView(scale=1.25)

    view.scale_by(factor)

    assert view.scale == 1.25
    assert view.zoom_level == 0.0


def test_initial_scale_is_normalized() -> None:
    view = MandelbrotView(scale=4.0, zoom_level=1.0)

    assert view.scale == pytest.approx(1.0)
    assert view.zoom_level == pytest.approx(3.0)


@pytest.mark.parametrize("kwargs", [{"width": 0}, {"height": -5}, {"scale": 0.0}])
def test_invalid_construction_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        MandelbrotView(**kwargs)


def test_copy_is_independent_snapshot() -> None:
    view = MandelbrotView(center_x=0.5, zoom_level=2.0)
    snap = view.copy()

    view.pan_by(5, 5)

    assert snap is not view
    assert snap.center_x == 0.5
    assert not snap.equals(view)


def test_equals_is_value_based() -> None:
    a = MandelbrotView(center_x=-0.5, center_y=0.25, zoom_level=2.0)
    b = MandelbrotView(center_x=-0.5, center_y=0.25, zoom_level=2.0)

    assert a is not b
    assert a.equals(b)
    assert not a.equals(None)
    assert not a.equals(MandelbrotView(center_x=-0.5, center_y=0.25, zoom_level=2.0, width=256))


def test_equals_with_tolerance() -> None:
    a = MandelbrotView(center_x=0.1 + 0.2)
    b = MandelbrotView(center_x=0.3)

    assert not a.equals(b)
    assert a.equals(b, tolerance=1e-12)
    assert not a.equals(MandelbrotView(center_x=0.31), tolerance=1e-12)


def test_url_params_json_is_compact_array() -> None:
    view = MandelbrotView(center_x=-0.75, center_y=0.1, zoom_level=4.0, scale=1.5, width=640, height=480)

    encoded = view.url_params_json()

    assert " " not in encoded
    assert json.loads(encoded) == [-0.75, 0.1, 4.0, 1.5, 640, 480]
