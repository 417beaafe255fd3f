"""Fakes for driving the viewer loop without real timers or network."""

from __future__ import annotations

import os

# Allow the Qt tests to run headless (CI, containers without a display).
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import pytest

from mandelbrot_viewer.client.fetch import FetchResult


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def advance(self, delta: float) -> None:
        self._now += float(delta)

    def set(self, value: float) -> None:
        self._now = float(value)

    def __call__(self) -> float:
        return self._now


@dataclass
class FakeTimer:
    due: float
    order: int
    fn: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic scheduler: nothing runs until the test advances time."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self._timers: list[FakeTimer] = []
        self._order = 0

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> FakeTimer:
        self._order += 1
        timer = FakeTimer(self.clock() + max(0.0, float(delay_s)), self._order, fn)
        self._timers.append(timer)
        return timer

    def call_soon(self, fn: Callable[[], None]) -> FakeTimer:
        return self.call_later(0.0, fn)

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self._timers if not t.cancelled]

    def _pop_due(self, limit: float) -> Optional[FakeTimer]:
        due = [t for t in self._timers if not t.cancelled and t.due <= limit]
        if not due:
            return None
        timer = min(due, key=lambda t: (t.due, t.order))
        self._timers.remove(timer)
        return timer

    def run_due(self) -> int:
        """Run everything due at the current time, including newly due work."""
        ran = 0
        while True:
            timer = self._pop_due(self.clock())
            if timer is None:
                return ran
            timer.fn()
            ran += 1

    def advance(self, delta: float) -> int:
        target = self.clock() + float(delta)
        ran = 0
        while True:
            timer = self._pop_due(target)
            if timer is None:
                break
            self.clock.set(max(self.clock(), timer.due))
            timer.fn()
            ran += 1
        self.clock.set(target)
        return ran


@dataclass
class FakeFetch:
    url: str
    on_done: Callable[[FetchResult], None]
    cancelled: bool = False
    done: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeFetcher:
    """Records fetches; the test decides when (and whether) each completes."""

    fetches: list[FakeFetch] = field(default_factory=list)
    max_in_flight: int = 0

    def fetch(self, url: str, on_done: Callable[[FetchResult], None]) -> FakeFetch:
        fetch = FakeFetch(url, on_done)
        self.fetches.append(fetch)
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        return fetch

    @property
    def in_flight(self) -> int:
        return sum(1 for f in self.fetches if not f.done and not f.cancelled)

    @property
    def last(self) -> FakeFetch:
        assert self.fetches, "no fetch issued"
        return self.fetches[-1]

    def complete(self, index: int = -1, image: Any = "image", error: Optional[str] = None) -> None:
        fetch = self.fetches[index]
        assert not fetch.done, "fetch already completed"
        fetch.done = True
        if error is not None:
            fetch.on_done(FetchResult(error=error))
        else:
            fetch.on_done(FetchResult(image=image))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(100.0)


@pytest.fixture
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()
