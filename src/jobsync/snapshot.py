from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx

from jobsync.errors import SnapshotFetchError


class SnapshotClient(Protocol):
    async def fetch_jobs(self, target: str) -> list[Any]: ...


class HttpSnapshotClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def url_for(self, target: str) -> str:
        return f"{self._base_url}/sessions/{quote(target, safe='')}/jobs"

    async def fetch_jobs(self, target: str) -> list[Any]:
        try:
            response = await self._client.get(self.url_for(target), timeout=self._timeout_seconds)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SnapshotFetchError(str(exc)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise SnapshotFetchError("Invalid jobs payload: response is not JSON") from exc

        if not isinstance(payload, list):
            raise SnapshotFetchError("Invalid jobs payload: expected a list of jobs")

        return payload
