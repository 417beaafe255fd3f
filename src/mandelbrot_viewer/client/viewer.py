"""Full-image Mandelbrot viewer: gesture input plus the render fetch loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Optional

from qtpy import QtCore, QtGui, QtWidgets

from mandelbrot_viewer.client.config import ViewerConfig, load_viewer_config
from mandelbrot_viewer.client.debug_channel import DebugChannel, DebugSink
from mandelbrot_viewer.client.fetch import (
    ImageFetcher,
    QtImageFetcher,
    QueryArgs,
    build_base_url,
)
from mandelbrot_viewer.client.gestures import GestureTranslator
from mandelbrot_viewer.client.input import InputSender
from mandelbrot_viewer.client.scheduler import QtScheduler, Scheduler
from mandelbrot_viewer.client.synchronizer import ViewSynchronizer
from mandelbrot_viewer.view.view_state import ViewState

logger = logging.getLogger(__name__)


class ImageSurface(QtWidgets.QLabel):  # type: ignore[misc]
    """Display surface holding exactly one rendered image at a time."""

    def __init__(self, width: int, height: int, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("img_container")
        self.setAlignment(QtCore.Qt.AlignCenter)  # type: ignore[attr-defined]
        self.setFixedSize(int(width), int(height))
        self.image: Optional[QtGui.QImage] = None
        self.swaps = 0

    def show_image(self, image: Any) -> None:
        if isinstance(image, QtGui.QPixmap):
            pixmap = image
        else:
            pixmap = QtGui.QPixmap.fromImage(image)
        self.image = image
        self.swaps += 1
        self.setPixmap(pixmap)


def _replace_contents(container: QtWidgets.QWidget, widget: QtWidgets.QWidget) -> None:
    """Drop everything the container shows and install ``widget`` alone."""

    layout = container.layout()
    if layout is None:
        layout = QtWidgets.QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
    while layout.count():
        item = layout.takeAt(0)
        child = item.widget()
        if child is not None:
            child.hide()
            child.deleteLater()
    for child in container.children():
        if isinstance(child, QtWidgets.QWidget) and child is not widget:
            child.hide()
            child.deleteLater()
    layout.addWidget(widget)


class FullImageViewer:
    """Viewer that owns a container widget and keeps it showing the desired view.

    Construction takes over ``container`` and starts the reconciliation loop
    immediately. ``destroy`` is the only way to stop it; afterwards nothing
    in the container changes again.
    """

    def __init__(
        self,
        container: QtWidgets.QWidget,
        host: str,
        port: int,
        view: ViewState,
        *,
        config: Optional[ViewerConfig] = None,
        fetcher: Optional[ImageFetcher] = None,
        scheduler: Optional[Scheduler] = None,
        image_query_args: Optional[Callable[[], QueryArgs]] = None,
        debug_log: Optional[DebugSink] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        app = QtCore.QCoreApplication.instance()
        assert app is not None, "Qt application instance must exist"
        self._config = config or load_viewer_config()
        self._debug = DebugChannel(debug_log)
        self.base_url = build_base_url(host, port, self._config.image_path)
        self.desired = view

        width = int(getattr(view, "width", 512))
        height = int(getattr(view, "height", 512))
        self.surface = ImageSurface(width, height)
        _replace_contents(container, self.surface)
        self._container = container

        self._scheduler = scheduler or QtScheduler(self.surface)
        self._fetcher = fetcher or QtImageFetcher(self.surface)

        self.translator = GestureTranslator(
            view,
            scheduler=self._scheduler,
            config=self._config,
            debug=self._debug,
        )
        self.synchronizer = ViewSynchronizer(
            view,
            base_url=self.base_url,
            fetcher=self._fetcher,
            scheduler=self._scheduler,
            present=self._present,
            config=self._config,
            image_query_args=image_query_args,
            clock=clock,
            debug=self._debug,
        )

        # Load the next image, non-stop until destroyed.
        self.synchronizer.start()

        self._input = InputSender(
            self.surface,
            self.translator.handle,
            lines_per_notch=self._config.wheel_lines_per_notch,
            log_info=self._config.input_log,
        )
        self._input.start()
        logger.info("viewer started: %s (%dx%d)", self.base_url, width, height)

    @property
    def dragging(self) -> bool:
        return self.translator.dragging

    @property
    def destroyed(self) -> bool:
        return self.synchronizer.destroyed

    def debug_message(self, msg: str) -> None:
        self._debug.message(msg)

    def _present(self, image: Any) -> None:
        if self.synchronizer.destroyed:
            return
        self.surface.show_image(image)

    def destroy(self) -> None:
        if self.synchronizer.destroyed:
            return
        self.synchronizer.destroy()
        self._input.stop()
        logger.info("viewer destroyed: %s", self.base_url)


__all__ = ["FullImageViewer", "ImageSurface"]
