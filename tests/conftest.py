from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from jobsync.config import get_settings


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def job_record(
    job_id: str,
    *,
    status: str = "queued",
    progress: int = 0,
    owner_id: str = "proj-1",
    **extra: Any,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": job_id,
        "type": "generation",
        "status": status,
        "progress": progress,
        "ownerId": owner_id,
        "createdAt": "2026-01-01T00:00:00+00:00",
    }
    record.update(extra)
    return record


class _Timer:
    def __init__(self, due: float, delay: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[_Timer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now + delay, delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[_Timer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in sorted(self.pending, key=lambda item: item.due):
            if timer.due <= self.now and not timer.cancelled:
                timer.fired = True
                timer.callback()


class FakeChannel:
    def __init__(
        self,
        target: str,
        *,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        self.target = target
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def open(self) -> None:
        self._on_open()

    def deliver(self, raw: str) -> None:
        self._on_message(raw)

    def fail(self, exc: Exception | None = None) -> None:
        self._on_error(exc or ConnectionError("stream dropped"))


class FakeChannelFactory:
    def __init__(self) -> None:
        self.opened: list[FakeChannel] = []

    def open(
        self,
        target: str,
        *,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ) -> FakeChannel:
        channel = FakeChannel(target, on_open=on_open, on_message=on_message, on_error=on_error)
        self.opened.append(channel)
        return channel

    @property
    def latest(self) -> FakeChannel:
        return self.opened[-1]


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def channels() -> FakeChannelFactory:
    return FakeChannelFactory()
