from __future__ import annotations

from collections.abc import Mapping
import json
import logging
from typing import Any

from pydantic import ValidationError

from jobsync.errors import JobDecodeError
from jobsync.models import Job
from jobsync.store import JobStore

logger = logging.getLogger(__name__)

RawRecord = str | bytes | Mapping[str, Any]


def decode_job(raw: RawRecord) -> Job:
    payload: Any = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise JobDecodeError(f"invalid job payload: {exc}") from exc

    if not isinstance(payload, Mapping):
        raise JobDecodeError("job payload must be a JSON object")

    try:
        return Job.model_validate(dict(payload))
    except ValidationError as exc:
        raise JobDecodeError(f"invalid job record: {exc.error_count()} error(s): {exc}") from exc


class EventRouter:
    def __init__(self, store: JobStore) -> None:
        self._store = store

    def on_message(self, raw: RawRecord) -> Job | None:
        try:
            job = decode_job(raw)
        except JobDecodeError as exc:
            logger.warning("dropping malformed job record: %s", exc)
            return None

        self._store.merge(job)
        return job
