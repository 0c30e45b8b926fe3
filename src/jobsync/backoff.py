from __future__ import annotations

from dataclasses import dataclass

from jobsync.config import Settings

# 2**32 seconds is far past any sane cap.
_MAX_EXPONENT = 32


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff for channel reconnects.

    ``delay_for(attempt)`` is ``min(base * 2**attempt, cap)`` in seconds and
    ``should_retry(attempt)`` turns false once ``attempt`` reaches
    ``max_attempts``. Both are pure.
    """

    base_seconds: float = 1.0
    cap_seconds: float = 30.0
    max_attempts: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> ReconnectPolicy:
        return cls(
            base_seconds=settings.reconnect_base_seconds,
            cap_seconds=settings.reconnect_max_seconds,
            max_attempts=settings.reconnect_max_attempts,
        )

    def delay_for(self, attempt: int) -> float:
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        exponent = min(attempt, _MAX_EXPONENT)
        return min(self.base_seconds * (2**exponent), self.cap_seconds)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts
