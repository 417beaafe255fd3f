"""Client side of the viewer: gesture input, render fetch loop, Qt wiring."""

from __future__ import annotations

__all__ = [
    "config",
    "debug_channel",
    "fetch",
    "gestures",
    "input",
    "scheduler",
    "synchronizer",
    "viewer",
    "FullImageViewer",
]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "FullImageViewer":
        from .viewer import FullImageViewer

        globals()[name] = FullImageViewer
        return FullImageViewer
    raise AttributeError(name)
