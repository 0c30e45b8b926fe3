from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging

from jobsync.backoff import ReconnectPolicy
from jobsync.channel import Channel, ChannelFactory
from jobsync.router import EventRouter
from jobsync.scheduling import LoopScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


StateObserver = Callable[[ConnectionState, int], None]


class StreamClient:
    """Owns the single event channel and its reconnect state machine.

    Every ``connect`` and every failure bumps a generation counter. Channel
    callbacks and reconnect timers carry the generation they were created
    under and are ignored once it is stale, so nothing from a superseded
    channel or a cancelled subscription can touch the store.
    """

    def __init__(
        self,
        channels: ChannelFactory,
        router: EventRouter,
        *,
        policy: ReconnectPolicy | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._channels = channels
        self._router = router
        self._policy = policy or ReconnectPolicy()
        self._scheduler = scheduler or LoopScheduler()

        self._state = ConnectionState.DISCONNECTED
        self._attempt = 0
        self._notified_attempt = 0
        self._target: str | None = None
        self._channel: Channel | None = None
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._observers: list[StateObserver] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def target(self) -> str | None:
        return self._target

    @property
    def is_active(self) -> bool:
        return self._state is not ConnectionState.DISCONNECTED

    def add_state_observer(self, observer: StateObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def connect(self, target: str) -> None:
        if target != self._target:
            self._attempt = 0

        self._cancel_timer()
        self._close_channel()
        self._generation += 1
        generation = self._generation
        self._target = target
        self._set_state(ConnectionState.CONNECTING)

        try:
            channel = self._channels.open(
                target,
                on_open=lambda: self._handle_open(generation),
                on_message=lambda raw: self._handle_message(generation, raw),
                on_error=lambda exc: self._handle_error(generation, exc),
            )
        except Exception as exc:
            self._handle_error(generation, exc)
            return

        if generation == self._generation:
            self._channel = channel
        else:
            # Failed or torn down while opening.
            channel.close()

    def disconnect(self) -> None:
        self._generation += 1
        self._cancel_timer()
        self._close_channel()
        if self._target is not None:
            logger.info("event stream for %s disconnected", self._target)
        self._target = None
        self._attempt = 0
        self._set_state(ConnectionState.DISCONNECTED)

    def _handle_open(self, generation: int) -> None:
        if generation != self._generation or self._state is not ConnectionState.CONNECTING:
            return
        self._attempt = 0
        logger.info("event stream for %s connected", self._target)
        self._set_state(ConnectionState.CONNECTED)

    def _handle_message(self, generation: int, raw: str) -> None:
        if generation != self._generation:
            return
        if self._state is not ConnectionState.CONNECTED:
            logger.debug("ignoring event received in state %s", self._state.value)
            return
        self._router.on_message(raw)

    def _handle_error(self, generation: int, exc: Exception) -> None:
        if generation != self._generation or self._target is None:
            return
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return

        self._generation += 1
        self._close_channel()
        target = self._target

        if not self._policy.should_retry(self._attempt):
            logger.error(
                "event stream for %s lost after %d attempts: %s",
                target,
                self._attempt,
                exc,
            )
            self._set_state(ConnectionState.DISCONNECTED)
            return

        delay = self._policy.delay_for(self._attempt)
        self._attempt += 1
        logger.warning(
            "event stream for %s failed attempt=%d/%d error=%s; retrying in %.1fs",
            target,
            self._attempt,
            self._policy.max_attempts,
            exc,
            delay,
        )
        reconnect_generation = self._generation
        self._timer = self._scheduler.call_later(
            delay, lambda: self._reconnect(target, reconnect_generation)
        )
        self._set_state(ConnectionState.RECONNECTING)

    def _reconnect(self, target: str, generation: int) -> None:
        if generation != self._generation:
            return
        self._timer = None
        if self._target != target or self._state is not ConnectionState.RECONNECTING:
            return
        self.connect(target)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _close_channel(self) -> None:
        if self._channel is not None:
            channel, self._channel = self._channel, None
            channel.close()

    def _set_state(self, state: ConnectionState) -> None:
        previous = (self._state, self._notified_attempt)
        self._state = state
        self._notified_attempt = self._attempt
        if previous == (state, self._attempt):
            return
        for observer in list(self._observers):
            try:
                observer(state, self._attempt)
            except Exception:
                logger.exception("connection state observer %r failed", observer)
