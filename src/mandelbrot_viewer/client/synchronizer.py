"""Keep the displayed image eventually consistent with the desired view.

The synchronizer owns three view states:

- ``desired``: live object mutated by the gesture translator (read-only here)
- ``requested``: frozen snapshot of ``desired`` taken when a fetch is issued
- ``available``: snapshot the currently displayed image was rendered for

At most one fetch is outstanding. While it is in flight, gesture changes
simply accumulate in ``desired``; when it completes the image is swapped in
and reconciliation runs again, so a burst of changes costs exactly one
follow-up fetch for the latest view. With nothing to do the loop re-polls
after ``poll_interval_s`` without touching the network.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from mandelbrot_viewer.client.config import ViewerConfig
from mandelbrot_viewer.client.debug_channel import DebugChannel
from mandelbrot_viewer.client.fetch import (
    FetchHandle,
    FetchResult,
    ImageFetcher,
    QueryArgs,
    build_image_url,
)
from mandelbrot_viewer.client.scheduler import Scheduler, TimerHandle
from mandelbrot_viewer.view.view_state import ViewState

logger = logging.getLogger(__name__)


class SyncPhase(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DESTROYED = "destroyed"


@dataclass
class ImageRequest:
    """The single in-flight fetch; ``sequence`` values are never reused."""

    sequence: int
    snapshot: ViewState
    url: str
    issued_at: float
    handle: Optional[FetchHandle] = None


@dataclass(frozen=True)
class FetchCompletion:
    """Tagged completion handed to the synchronizer by the fetch callback."""

    sequence: int
    snapshot: ViewState
    result: FetchResult


class ViewSynchronizer:
    """Fetch-and-display loop for one viewer instance."""

    def __init__(
        self,
        desired: ViewState,
        *,
        base_url: str,
        fetcher: ImageFetcher,
        scheduler: Scheduler,
        present: Callable[[Any], None],
        config: ViewerConfig,
        image_query_args: Optional[Callable[[], QueryArgs]] = None,
        clock: Callable[[], float] = time.monotonic,
        debug: Optional[DebugChannel] = None,
    ) -> None:
        if config.poll_interval_s < 0:
            raise ValueError("poll interval must be non-negative")
        self._desired = desired
        self._base_url = base_url
        self._fetcher = fetcher
        self._scheduler = scheduler
        self._present = present
        self._config = config
        self._image_query_args = image_query_args or (lambda: config.image_query)
        self._clock = clock
        self._debug = debug or DebugChannel()
        self._log_fetch = bool(config.fetch_log)

        self._phase = SyncPhase.IDLE
        self._requested: Optional[ViewState] = None
        self._available: Optional[ViewState] = None
        self._in_flight: Optional[ImageRequest] = None
        self._next_sequence = 0
        self._poll_handle: Optional[TimerHandle] = None
        self._timeout_handle: Optional[TimerHandle] = None

    # ------------------------------------------------------------------ introspection
    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def destroyed(self) -> bool:
        return self._phase is SyncPhase.DESTROYED

    @property
    def requested(self) -> Optional[ViewState]:
        return self._requested

    @property
    def available(self) -> Optional[ViewState]:
        return self._available

    @property
    def in_flight(self) -> Optional[ImageRequest]:
        return self._in_flight

    @property
    def fetches_issued(self) -> int:
        return self._next_sequence

    def set_logging(self, enabled: bool) -> None:
        self._log_fetch = bool(enabled)

    # ------------------------------------------------------------------ lifecycle
    def start(self) -> None:
        self.reconcile()

    def destroy(self) -> None:
        """Enter the terminal state; in-flight results are discarded on arrival."""

        if self._phase is SyncPhase.DESTROYED:
            return
        self._phase = SyncPhase.DESTROYED
        self._cancel_poll()
        self._cancel_timeout()
        logger.debug(
            "synchronizer destroyed (in flight: %s)",
            self._in_flight.sequence if self._in_flight is not None else None,
        )

    # ------------------------------------------------------------------ reconciliation
    def reconcile(self) -> None:
        """One scheduling tick of the ``IDLE`` state."""

        if self._phase is not SyncPhase.IDLE:
            return
        self._poll_handle = None
        if not self._desired.equals(self._requested, self._config.view_tolerance):
            self._issue()
            return
        self._poll_handle = self._scheduler.call_later(
            self._config.poll_interval_s, self.reconcile
        )

    def _issue(self) -> None:
        sequence = self._next_sequence
        self._next_sequence += 1
        snapshot = self._desired.copy()
        url = build_image_url(
            self._base_url,
            snapshot.url_params_json(),
            self._image_query_args(),
        )
        logger.debug("Image URL: %s", url)
        self._requested = snapshot
        self._phase = SyncPhase.FETCHING
        request = ImageRequest(
            sequence=sequence,
            snapshot=snapshot,
            url=url,
            issued_at=float(self._clock()),
        )
        self._in_flight = request

        def _on_done(result: FetchResult) -> None:
            self._on_fetch_complete(FetchCompletion(sequence, snapshot, result))

        timeout_s = float(self._config.fetch_timeout_s)
        if timeout_s > 0.0:
            self._timeout_handle = self._scheduler.call_later(
                timeout_s, lambda: self._on_fetch_timeout(sequence)
            )
        handle = self._fetcher.fetch(url, _on_done)
        # The fetcher may have completed synchronously.
        if self._in_flight is request:
            request.handle = handle

    # ------------------------------------------------------------------ completion
    def _on_fetch_complete(self, completion: FetchCompletion) -> None:
        if self._phase is SyncPhase.DESTROYED:
            logger.debug("Image %d arrived after destroy; discarded", completion.sequence)
            return
        request = self._in_flight
        if request is None or request.sequence != completion.sequence:
            logger.debug("Image %d is stale; discarded", completion.sequence)
            return
        self._in_flight = None
        self._cancel_timeout()
        elapsed_ms = (float(self._clock()) - request.issued_at) * 1000.0

        if not completion.result.ok:
            logger.warning(
                "Image %d failed after %.0f ms: %s",
                completion.sequence,
                elapsed_ms,
                completion.result.error,
            )
            self._debug.message(f"Image {completion.sequence} failed: {completion.result.error}")
            self._demote()
            return

        if self._log_fetch:
            logger.info("Image %d loaded after %.0f ms.", completion.sequence, elapsed_ms)
        else:
            logger.debug("Image %d loaded after %.0f ms.", completion.sequence, elapsed_ms)
        try:
            self._present(completion.result.image)
        except Exception:
            logger.warning("Image %d could not be displayed", completion.sequence, exc_info=True)
            self._debug.message(f"Image {completion.sequence} could not be displayed")
            self._demote()
            return
        self._available = completion.snapshot
        self._phase = SyncPhase.IDLE
        # Yield once so the new image gets painted before the next fetch.
        self._poll_handle = self._scheduler.call_soon(self.reconcile)

    def _on_fetch_timeout(self, sequence: int) -> None:
        self._timeout_handle = None
        request = self._in_flight
        if self._phase is not SyncPhase.FETCHING or request is None or request.sequence != sequence:
            return
        logger.warning(
            "Image %d timed out after %.1f s; requesting again",
            sequence,
            float(self._config.fetch_timeout_s),
        )
        self._in_flight = None
        if request.handle is not None:
            request.handle.cancel()
        self._demote()

    def _demote(self) -> None:
        """Return to ``IDLE`` as if the lost request had never been issued.

        ``requested`` rolls back to ``available``, so the next tick fetches
        again unless the view already on screen is the desired one.
        """

        self._phase = SyncPhase.IDLE
        self._requested = self._available
        self._poll_handle = self._scheduler.call_later(
            self._config.poll_interval_s, self.reconcile
        )

    # ------------------------------------------------------------------ timers
    def _cancel_poll(self) -> None:
        handle = self._poll_handle
        self._poll_handle = None
        if handle is not None:
            handle.cancel()

    def _cancel_timeout(self) -> None:
        handle = self._timeout_handle
        self._timeout_handle = None
        if handle is not None:
            handle.cancel()


__all__ = [
    "FetchCompletion",
    "ImageRequest",
    "SyncPhase",
    "ViewSynchronizer",
]
