from __future__ import annotations

from collections.abc import Callable, Iterable, ValuesView
from datetime import datetime, timezone
import logging

from jobsync.models import Job

logger = logging.getLogger(__name__)

JobObserver = Callable[[list[Job]], None]


def _created_key(job: Job) -> datetime:
    created_at = job.created_at
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def newest_first(jobs: Iterable[Job]) -> list[Job]:
    return sorted(jobs, key=_created_key, reverse=True)


class JobStore:
    """In-memory id -> Job mapping.

    All mutation happens on the event loop thread, so there is no locking.
    Observers receive the full list of jobs after every merge.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._observers: list[JobObserver] = []

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def list(self) -> ValuesView[Job]:
        return self._jobs.values()

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def merge(self, job: Job) -> None:
        # Last write wins by arrival order; timestamps are not compared.
        self._jobs[job.id] = job
        self._notify()

    def clear(self) -> None:
        if not self._jobs:
            return
        self._jobs.clear()
        self._notify()

    def add_observer(self, observer: JobObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def _notify(self) -> None:
        snapshot = list(self._jobs.values())
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("job store observer %r failed", observer)
