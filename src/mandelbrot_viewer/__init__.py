"""
mandelbrot-viewer: interactive client for a remotely rendered Mandelbrot view.

Gestures on the display surface edit a desired view; a synchronizer keeps
requesting renders from the remote image service and swaps them in as they
arrive.
"""

__version__ = "0.1.0"

# Keep the package import free of Qt; the client subpackage pulls it in.
__all__ = ["__version__"]
