from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import logging
import sys

import httpx

from jobsync.config import Settings, get_settings
from jobsync.errors import SnapshotFetchError
from jobsync.models import Job
from jobsync.stream import ConnectionState
from jobsync.subscription import SubscriptionManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobsync-watch",
        description="Follow the jobs of one session and print every update as a JSON line",
    )
    parser.add_argument("--session", required=True, help="Session id whose jobs are followed")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Backend API base URL (defaults to JOBSYNC_BASE_URL)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level for stderr diagnostics (defaults to JOBSYNC_LOG_LEVEL)",
    )
    return parser


class _JobPrinter:
    def __init__(self) -> None:
        self._seen: dict[str, Job] = {}

    def __call__(self, jobs: list[Job]) -> None:
        for job in jobs:
            if self._seen.get(job.id) == job:
                continue
            self._seen[job.id] = job
            print(job.model_dump_json(), flush=True)


async def watch(
    session_id: str,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    async with httpx.AsyncClient(transport=transport) as client:
        manager = SubscriptionManager.from_settings(client, settings)
        manager.store.add_observer(_JobPrinter())

        lost = asyncio.Event()

        def on_state(state: ConnectionState, attempt: int) -> None:
            # disconnect() clears the target, exhaustion keeps it.
            if state is ConnectionState.DISCONNECTED and manager.stream.target is not None:
                lost.set()

        manager.stream.add_state_observer(on_state)

        await manager.subscribe(session_id)
        try:
            await lost.wait()
        finally:
            manager.unsubscribe()

    print(f"[jobsync-watch] connection to session {session_id} lost", file=sys.stderr, flush=True)
    return 1


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    settings = get_settings()
    if args.base_url:
        settings = replace(settings, base_url=args.base_url)

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        exit_code = asyncio.run(watch(args.session, settings))
    except SnapshotFetchError as exc:
        print(f"[jobsync-watch] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        exit_code = 0

    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
