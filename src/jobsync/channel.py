from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Protocol
from urllib.parse import quote

import httpx

from jobsync.errors import ChannelError
from jobsync.sse import aiter_events

logger = logging.getLogger(__name__)

# The backend writes bare data: frames (type "message"); "job-update" is also accepted.
_JOB_EVENT_TYPES = frozenset({"message", "job-update"})


class Channel(Protocol):
    def close(self) -> None: ...


class ChannelFactory(Protocol):
    def open(
        self,
        target: str,
        *,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ) -> Channel: ...


class SseChannel:
    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout: httpx.Timeout,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._closed = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"jobsync-sse {url}")

    @property
    def url(self) -> str:
        return self._url

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._task.cancel()

    async def _run(self) -> None:
        try:
            await self._consume()
        except asyncio.CancelledError:
            raise
        except (httpx.HTTPError, ChannelError) as exc:
            self._fail(exc)
        except Exception as exc:
            logger.exception("event stream %s crashed", self._url)
            self._fail(exc)

    async def _consume(self) -> None:
        async with self._client.stream(
            "GET",
            self._url,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=self._timeout,
        ) as response:
            if not response.is_success:
                raise ChannelError(f"event stream returned HTTP {response.status_code}")

            self._on_open()
            async for event in aiter_events(response.aiter_lines()):
                if self._closed:
                    return
                if event.event in _JOB_EVENT_TYPES:
                    self._on_message(event.data)

        if not self._closed:
            raise ChannelError("event stream closed by server")

    def _fail(self, exc: Exception) -> None:
        if self._closed:
            return
        self._closed = True
        self._on_error(exc)


class SseChannelFactory:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        # Connect/write bounded; reads idle until the server pushes.
        self._timeout = httpx.Timeout(timeout_seconds, read=None)

    def url_for(self, target: str) -> str:
        return f"{self._base_url}/sessions/{quote(target, safe='')}/events"

    def open(
        self,
        target: str,
        *,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ) -> SseChannel:
        return SseChannel(
            self._client,
            self.url_for(target),
            timeout=self._timeout,
            on_open=on_open,
            on_message=on_message,
            on_error=on_error,
        )
