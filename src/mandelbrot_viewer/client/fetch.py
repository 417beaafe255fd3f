"""Outbound image fetches against the remote renderer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union
from urllib.parse import quote, urlencode

from qtpy import QtCore, QtGui, QtNetwork

logger = logging.getLogger(__name__)

QueryArgs = Union[str, Mapping[str, Any], None]


def build_base_url(host: str, port: int, path: str = "/img") -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"http://{host}:{int(port)}{path}"


def encode_query_args(args: QueryArgs) -> str:
    """Render auxiliary image-quality arguments as a query fragment."""

    if args is None:
        return ""
    if isinstance(args, str):
        return args.lstrip("?&")
    return urlencode([(str(k), str(v)) for k, v in args.items()])


def build_image_url(base_url: str, params_json: str, query_args: QueryArgs = None) -> str:
    url = f"{base_url}?data={quote(params_json, safe='')}"
    extra = encode_query_args(query_args)
    if extra:
        url = f"{url}&{extra}"
    return url


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one image load; ``image`` is ``None`` when ``error`` is set."""

    image: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.image is not None


class FetchHandle(Protocol):
    def cancel(self) -> None: ...


class ImageFetcher(Protocol):
    """Start a non-blocking image load and report back exactly once."""

    def fetch(self, url: str, on_done: Callable[[FetchResult], None]) -> FetchHandle: ...


class QtFetchHandle:
    def __init__(self, reply: QtNetwork.QNetworkReply) -> None:
        self._reply: Optional[QtNetwork.QNetworkReply] = reply
        self.cancelled = False

    def cancel(self) -> None:
        reply = self._reply
        self._reply = None
        if reply is None:
            return
        self.cancelled = True
        reply.abort()

    def _detach(self) -> None:
        self._reply = None


class QtImageFetcher:
    """Load images over HTTP with ``QNetworkAccessManager``.

    Completion is delivered on the GUI thread by the Qt event loop; the body
    is decoded into a ``QImage``. Aborted requests report nothing.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        self._manager = QtNetwork.QNetworkAccessManager(parent)

    def fetch(self, url: str, on_done: Callable[[FetchResult], None]) -> QtFetchHandle:
        request = QtNetwork.QNetworkRequest(QtCore.QUrl(url))
        reply = self._manager.get(request)
        handle = QtFetchHandle(reply)

        def _finished() -> None:
            handle._detach()
            try:
                if handle.cancelled:
                    return
                on_done(self._decode(reply))
            except Exception:
                logger.warning("image completion callback failed", exc_info=True)
            finally:
                reply.deleteLater()

        reply.finished.connect(_finished)  # type: ignore[attr-defined]
        return handle

    @staticmethod
    def _decode(reply: QtNetwork.QNetworkReply) -> FetchResult:
        if reply.error() != QtNetwork.QNetworkReply.NoError:  # type: ignore[attr-defined]
            return FetchResult(error=str(reply.errorString()))
        data = bytes(reply.readAll())
        image = QtGui.QImage()
        if not data or not image.loadFromData(data):
            return FetchResult(error=f"undecodable image payload ({len(data)} bytes)")
        return FetchResult(image=image)


__all__ = [
    "FetchHandle",
    "FetchResult",
    "ImageFetcher",
    "QtFetchHandle",
    "QtImageFetcher",
    "QueryArgs",
    "build_base_url",
    "build_image_url",
    "encode_query_args",
]
