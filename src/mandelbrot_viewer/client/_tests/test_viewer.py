from __future__ import annotations

import json
from urllib.parse import parse_qs, urlsplit

import pytest
from qtpy import QtGui, QtWidgets

from mandelbrot_viewer.client import debug_channel
from mandelbrot_viewer.client.config import ViewerConfig
from mandelbrot_viewer.client.viewer import FullImageViewer, ImageSurface
from mandelbrot_viewer.view.view_state import MandelbrotView


def _image() -> QtGui.QImage:
    image = QtGui.QImage(16, 16, QtGui.QImage.Format_RGB32)
    image.fill(0)
    return image


@pytest.fixture
def container(qtbot):  # type: ignore[no-untyped-def]
    widget = QtWidgets.QWidget()
    qtbot.addWidget(widget)
    return widget


@pytest.fixture
def make_viewer(container, fetcher, scheduler, clock):  # type: ignore[no-untyped-def]
    created: list[FullImageViewer] = []

    def _make(view=None, **kwargs):  # type: ignore[no-untyped-def]
        viewer = FullImageViewer(
            container,
            "render.local",
            9000,
            view or MandelbrotView(width=64, height=48),
            config=kwargs.pop("config", ViewerConfig()),
            fetcher=fetcher,
            scheduler=scheduler,
            clock=clock,
            **kwargs,
        )
        created.append(viewer)
        return viewer

    yield _make
    for viewer in created:
        viewer.destroy()


def test_viewer_replaces_container_contents(container, make_viewer) -> None:
    old = QtWidgets.QLabel("placeholder", container)

    viewer = make_viewer()

    assert old.isHidden()
    layout = container.layout()
    assert layout.count() == 1
    assert layout.itemAt(0).widget() is viewer.surface
    assert isinstance(viewer.surface, ImageSurface)
    assert viewer.surface.objectName() == "img_container"
    assert (viewer.surface.width(), viewer.surface.height()) == (64, 48)


def test_viewer_requests_initial_view_on_construction(make_viewer, fetcher) -> None:
    view = MandelbrotView(center_x=-0.5, zoom_level=2.0, width=64, height=48)

    viewer = make_viewer(view)

    assert viewer.base_url == "http://render.local:9000/img"
    assert len(fetcher.fetches) == 1
    data = parse_qs(urlsplit(fetcher.last.url).query)["data"][0]
    assert json.loads(data) == [-0.5, 0.0, 2.0, 1.0, 64, 48]


def test_completed_fetch_swaps_surface_image(make_viewer, fetcher, scheduler) -> None:
    view = MandelbrotView(width=64, height=48)
    viewer = make_viewer(view)
    first = _image()

    fetcher.complete(0, image=first)
    assert viewer.surface.swaps == 1
    assert viewer.surface.image is first
    assert viewer.surface.pixmap() is not None

    view.zoom_by(0.5)
    scheduler.run_due()
    assert len(fetcher.fetches) == 2
    fetcher.complete(1, image=_image())
    assert viewer.surface.swaps == 2


def test_destroy_freezes_surface(make_viewer, fetcher, scheduler) -> None:
    view = MandelbrotView(width=64, height=48)
    viewer = make_viewer(view)

    viewer.destroy()
    viewer.destroy()
    fetcher.complete(0, image=_image())
    view.pan_by(10, 10)
    scheduler.advance(1.0)

    assert viewer.destroyed
    assert viewer.surface.swaps == 0
    assert len(fetcher.fetches) == 1


def test_dragging_reflects_translator_state(make_viewer, scheduler) -> None:
    viewer = make_viewer()

    viewer.translator.handle({"type": "input.dragstart"})
    assert viewer.dragging
    viewer.translator.handle({"type": "input.dragend"})
    scheduler.run_due()
    assert not viewer.dragging


def test_debug_log_receives_messages_when_enabled(make_viewer, qtbot, monkeypatch) -> None:
    monkeypatch.setattr(debug_channel, "_debug_enabled", True)
    log = QtWidgets.QPlainTextEdit()
    qtbot.addWidget(log)

    viewer = make_viewer(debug_log=log)
    viewer.debug_message("hello")

    assert "hello" in log.toPlainText()
