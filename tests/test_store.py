from datetime import datetime, timezone

from jobsync.models import Job, JobStatus
from jobsync.store import JobStore, newest_first

from conftest import job_record


def _job(job_id: str, **kwargs: object) -> Job:
    return Job.model_validate(job_record(job_id, **kwargs))  # type: ignore[arg-type]


def test_merge_same_id_keeps_last_payload() -> None:
    store = JobStore()

    store.merge(_job("j1", status="running", progress=40, message="first"))
    store.merge(_job("j1", status="queued", progress=5, message="second"))

    assert len(store) == 1
    job = store.get("j1")
    assert job is not None
    assert job.status is JobStatus.QUEUED
    assert job.progress == 5
    assert job.message == "second"


def test_merge_distinct_ids_keeps_both() -> None:
    store = JobStore()

    store.merge(_job("j1"))
    store.merge(_job("j2"))

    assert sorted(job.id for job in store.list()) == ["j1", "j2"]
    assert "j1" in store
    assert store.get("missing") is None


def test_list_is_restartable_and_does_not_mutate() -> None:
    store = JobStore()
    store.merge(_job("j1"))

    view = store.list()

    assert [job.id for job in view] == ["j1"]
    assert [job.id for job in view] == ["j1"]
    store.merge(_job("j2"))
    assert sorted(job.id for job in view) == ["j1", "j2"]
    assert len(store) == 2


def test_observers_receive_full_list_after_each_merge() -> None:
    store = JobStore()
    calls: list[list[str]] = []
    store.add_observer(lambda jobs: calls.append(sorted(job.id for job in jobs)))

    store.merge(_job("j1"))
    store.merge(_job("j2"))
    store.merge(_job("j1", status="running"))

    assert calls == [["j1"], ["j1", "j2"], ["j1", "j2"]]


def test_removed_observer_is_not_notified() -> None:
    store = JobStore()
    calls: list[int] = []
    remove = store.add_observer(lambda jobs: calls.append(len(jobs)))

    store.merge(_job("j1"))
    remove()
    remove()
    store.merge(_job("j2"))

    assert calls == [1]


def test_failing_observer_does_not_block_merge_or_other_observers() -> None:
    store = JobStore()
    seen: list[int] = []

    def broken(jobs: list[Job]) -> None:
        raise RuntimeError("render failed")

    store.add_observer(broken)
    store.add_observer(lambda jobs: seen.append(len(jobs)))

    store.merge(_job("j1"))

    assert store.get("j1") is not None
    assert seen == [1]


def test_clear_empties_store_and_notifies_once() -> None:
    store = JobStore()
    calls: list[int] = []
    store.merge(_job("j1"))
    store.add_observer(lambda jobs: calls.append(len(jobs)))

    store.clear()
    store.clear()

    assert len(store) == 0
    assert calls == [0]


def test_newest_first_orders_by_creation_time() -> None:
    older = _job("old", createdAt="2026-01-01T00:00:00+00:00")
    newer = _job("new", createdAt="2026-01-02T00:00:00+00:00")
    naive = _job("naive", createdAt="2026-01-01T12:00:00")

    ordered = newest_first([older, naive, newer])

    assert [job.id for job in ordered] == ["new", "naive", "old"]
    assert newer.created_at == datetime(2026, 1, 2, tzinfo=timezone.utc)
