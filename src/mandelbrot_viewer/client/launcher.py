"""
Launcher for the full-image Mandelbrot viewer.

Opens a window that shows the remote renderer's output for the current view
and lets the user drag, pinch and scroll to explore it.
"""

import argparse
import logging
import os
import sys
from dataclasses import replace

from qtpy import QtWidgets

from mandelbrot_viewer.client.config import load_viewer_config
from mandelbrot_viewer.client.debug_channel import set_debug_enabled
from mandelbrot_viewer.client.viewer import FullImageViewer
from mandelbrot_viewer.view.view_state import MandelbrotView

logger = logging.getLogger(__name__)


def launch_viewer(server_host='localhost',
                  port=8080,
                  view=None,
                  path=None,
                  query=None,
                  debug=False):
    """
    Open the viewer window and run the Qt event loop until it closes.

    Parameters
    ----------
    server_host : str
        Renderer hostname/IP
    port : int
        Renderer HTTP port
    view : MandelbrotView, optional
        Initial view; defaults to the whole set at 512x512
    path : str, optional
        Image endpoint path (default from config, ``/img``)
    query : str, optional
        Extra image-quality query arguments appended to every request
    debug : bool
        Enable debug logging and the on-screen debug log
    """
    if os.getenv('MANDELBROT_VIEWER_DEBUG', '').lower() in ('1', 'true', 'yes'):
        debug = True
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='[%(asctime)s] %(name)s - %(levelname)s - %(message)s'
    )
    set_debug_enabled(debug)

    config = load_viewer_config()
    overrides = {}
    if path:
        overrides['image_path'] = path if path.startswith('/') else '/' + path
    if query:
        overrides['image_query'] = query
    if overrides:
        config = replace(config, **overrides)

    if view is None:
        view = MandelbrotView()

    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(sys.argv)

    window = QtWidgets.QWidget()
    window.setWindowTitle(f'Mandelbrot viewer - {server_host}:{port}')
    outer = QtWidgets.QVBoxLayout(window)
    container = QtWidgets.QWidget(window)
    outer.addWidget(container)

    debug_log = None
    if debug:
        debug_log = QtWidgets.QPlainTextEdit(window)
        debug_log.setObjectName('debugLog')
        debug_log.setReadOnly(True)
        debug_log.setMaximumBlockCount(500)
        outer.addWidget(debug_log)

    logger.info("Launching viewer for %s:%d", server_host, port)
    viewer = FullImageViewer(
        container,
        server_host,
        port,
        view,
        config=config,
        debug_log=debug_log,
    )
    window.show()

    try:
        return app.exec_()
    finally:
        viewer.destroy()
        logger.info("Viewer closed")


def main():
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description='Interactive viewer for a remote Mandelbrot renderer'
    )

    parser.add_argument(
        '--host',
        default='localhost',
        help='Renderer hostname/IP (default: localhost)'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=8080,
        help='Renderer HTTP port (default: 8080)'
    )

    parser.add_argument(
        '--path',
        default=None,
        help='Image endpoint path (default: /img)'
    )

    parser.add_argument(
        '--query',
        default=None,
        help='Extra image-quality query arguments, e.g. "max_iter=500&aa=2"'
    )

    parser.add_argument('--x', type=float, default=0.0, help='Initial center x')
    parser.add_argument('--y', type=float, default=0.0, help='Initial center y')
    parser.add_argument('--zoom', type=float, default=0.0, help='Initial zoom level')
    parser.add_argument('--width', type=int, default=512, help='Image width in pixels')
    parser.add_argument('--height', type=int, default=512, help='Image height in pixels')

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging and the debug log pane'
    )

    args = parser.parse_args()
    if args.width <= 0 or args.height <= 0:
        parser.error('--width and --height must be positive')

    view = MandelbrotView(
        center_x=args.x,
        center_y=args.y,
        zoom_level=args.zoom,
        width=args.width,
        height=args.height,
    )
    return launch_viewer(
        server_host=args.host,
        port=args.port,
        view=view,
        path=args.path,
        query=args.query,
        debug=args.debug,
    )


if __name__ == '__main__':
    sys.exit(main())
