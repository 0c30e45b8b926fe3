from __future__ import annotations

import asyncio
import logging

import httpx

from jobsync.backoff import ReconnectPolicy
from jobsync.channel import ChannelFactory, SseChannelFactory
from jobsync.config import Settings, get_settings
from jobsync.router import EventRouter
from jobsync.scheduling import Scheduler
from jobsync.snapshot import HttpSnapshotClient, SnapshotClient
from jobsync.store import JobStore
from jobsync.stream import ConnectionState, StreamClient

logger = logging.getLogger(__name__)


def _retrieve_exception(future: asyncio.Future[None]) -> None:
    # The caller may be cancelled while the shielded bootstrap keeps running.
    if not future.cancelled():
        future.exception()


class SubscriptionManager:
    """Follows the jobs of one session at a time.

    ``subscribe`` clears the store, loads the session snapshot and then hands
    over to the event stream. Snapshot failures are raised to the caller;
    stream failures only show up through ``state``.
    """

    def __init__(
        self,
        snapshots: SnapshotClient,
        channels: ChannelFactory,
        *,
        store: JobStore | None = None,
        policy: ReconnectPolicy | None = None,
        scheduler: Scheduler | None = None,
        clear_on_unsubscribe: bool = True,
    ) -> None:
        self._snapshots = snapshots
        self._store = store if store is not None else JobStore()
        self._router = EventRouter(self._store)
        self._stream = StreamClient(channels, self._router, policy=policy, scheduler=scheduler)
        self._clear_on_unsubscribe = clear_on_unsubscribe

        self._target: str | None = None
        self._epoch = 0
        self._pending: asyncio.Future[None] | None = None

    @classmethod
    def from_settings(
        cls,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> SubscriptionManager:
        settings = settings or get_settings()
        return cls(
            HttpSnapshotClient(
                client,
                base_url=settings.base_url,
                timeout_seconds=settings.timeout_seconds,
            ),
            SseChannelFactory(
                client,
                base_url=settings.base_url,
                timeout_seconds=settings.timeout_seconds,
            ),
            policy=ReconnectPolicy.from_settings(settings),
            scheduler=scheduler,
            clear_on_unsubscribe=settings.clear_on_unsubscribe,
        )

    @property
    def target(self) -> str | None:
        return self._target

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def stream(self) -> StreamClient:
        return self._stream

    @property
    def state(self) -> ConnectionState:
        return self._stream.state

    async def subscribe(self, target: str) -> None:
        if target == self._target:
            if self._pending is not None:
                await asyncio.shield(self._pending)
                return
            if self._stream.is_active:
                return

        self._epoch += 1
        self._stream.disconnect()
        self._store.clear()
        self._target = target

        pending = asyncio.ensure_future(self._bootstrap(target, self._epoch))
        pending.add_done_callback(_retrieve_exception)
        self._pending = pending
        try:
            await asyncio.shield(pending)
        finally:
            if self._pending is pending:
                self._pending = None

    def unsubscribe(self) -> None:
        self._epoch += 1
        self._stream.disconnect()
        self._target = None
        self._pending = None
        if self._clear_on_unsubscribe:
            self._store.clear()

    async def _bootstrap(self, target: str, epoch: int) -> None:
        try:
            records = await self._snapshots.fetch_jobs(target)
        except Exception as exc:
            if epoch == self._epoch:
                self._target = None
            logger.warning("snapshot fetch for %s failed: %s", target, exc)
            raise

        if epoch != self._epoch:
            logger.info("discarding late snapshot for %s", target)
            return

        for record in records:
            self._router.on_message(record)
        logger.info("loaded %d job(s) for %s", len(self._store), target)

        self._stream.connect(target)
