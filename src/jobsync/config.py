from dataclasses import dataclass
from functools import lru_cache
import os


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: str | None, *, default: int, minimum: int) -> int:
    if value is None:
        return default
    parsed = int(value)
    return max(minimum, parsed)


def _to_float(value: str | None, *, default: float, minimum: float) -> float:
    if value is None:
        return default
    parsed = float(value)
    return max(minimum, parsed)


@dataclass(frozen=True)
class Settings:
    base_url: str
    timeout_seconds: float
    reconnect_base_seconds: float
    reconnect_max_seconds: float
    reconnect_max_attempts: int
    clear_on_unsubscribe: bool
    log_level: str


@lru_cache
def get_settings() -> Settings:
    return Settings(
        base_url=os.getenv("JOBSYNC_BASE_URL", "http://localhost:17532/api"),
        timeout_seconds=_to_float(
            os.getenv("JOBSYNC_TIMEOUT_SECONDS"), default=30.0, minimum=1.0
        ),
        reconnect_base_seconds=_to_float(
            os.getenv("JOBSYNC_RECONNECT_BASE_SECONDS"), default=1.0, minimum=0.1
        ),
        reconnect_max_seconds=_to_float(
            os.getenv("JOBSYNC_RECONNECT_MAX_SECONDS"), default=30.0, minimum=0.5
        ),
        reconnect_max_attempts=_to_int(
            os.getenv("JOBSYNC_RECONNECT_MAX_ATTEMPTS"), default=10, minimum=1
        ),
        clear_on_unsubscribe=_to_bool(os.getenv("JOBSYNC_CLEAR_ON_UNSUBSCRIBE"), default=True),
        log_level=os.getenv("JOBSYNC_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
