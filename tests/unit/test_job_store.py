import pytest
from datetime import datetime, timedelta

from src.core.exceptions import JobNotFoundError, JobStateError
from src.engines.generation.job_store import (
    InMemoryJobStore,
    JobUpdate,
    apply_update,
    new_job,
)
from src.engines.generation.schemas import (
    Task,
    Provider,
    JobStatus,
    JobResult,
    GenerationRequest,
)


def _request(task=Task.REMOVE_BG):
    return GenerationRequest(task=task, input_url="https://cdn.example.com/shoe.png")


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.mark.asyncio
async def test_create_and_get_returns_copies(store):
    job = await store.create(new_job(_request(), provider_used=Provider.GEMINI))

    fetched = await store.get(job.id)
    assert fetched.status == JobStatus.PENDING
    assert fetched.provider_used == Provider.GEMINI
    assert fetched.input.input_url == "https://cdn.example.com/shoe.png"

    fetched.status = JobStatus.COMPLETED
    assert (await store.get(job.id)).status == JobStatus.PENDING


@pytest.mark.asyncio
async def test_duplicate_id_rejected(store):
    job = await store.create(new_job(_request()))
    with pytest.raises(JobStateError):
        await store.create(job)


@pytest.mark.asyncio
async def test_get_unknown_returns_none(store):
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_full_lifecycle_sets_completed_at_once(store):
    job = await store.create(new_job(_request()))

    processing = await store.update(job.id, JobUpdate(status=JobStatus.PROCESSING))
    assert processing.completed_at is None
    assert processing.updated_at > job.updated_at

    completed = await store.update(
        job.id,
        JobUpdate(
            status=JobStatus.COMPLETED,
            provider_used=Provider.ZAI,
            result=JobResult(output_url="https://x/y.png", cost_units=3)
        )
    )
    assert completed.status == JobStatus.COMPLETED
    assert completed.provider_used == Provider.ZAI
    assert completed.completed_at == completed.updated_at
    assert completed.result.cost_units == 3

    with pytest.raises(JobStateError):
        await store.update(job.id, JobUpdate(error="late"))

    assert (await store.get(job.id)).completed_at == completed.completed_at


@pytest.mark.asyncio
async def test_pending_can_fail_directly(store):
    job = await store.create(new_job(_request()))
    failed = await store.update(job.id, JobUpdate(status=JobStatus.FAILED, error="boom"))
    assert failed.status == JobStatus.FAILED
    assert failed.error == "boom"
    assert failed.completed_at is not None


@pytest.mark.asyncio
async def test_pending_cannot_complete_directly(store):
    job = await store.create(new_job(_request()))
    with pytest.raises(JobStateError):
        await store.update(job.id, JobUpdate(status=JobStatus.COMPLETED))


@pytest.mark.asyncio
async def test_update_unknown_job(store):
    with pytest.raises(JobNotFoundError):
        await store.update("missing", JobUpdate(status=JobStatus.PROCESSING))


def test_updated_at_strictly_increases_with_frozen_clock():
    job = new_job(_request())
    frozen = job.updated_at

    first = apply_update(job, JobUpdate(status=JobStatus.PROCESSING), now=frozen)
    second = apply_update(first, JobUpdate(error=None), now=frozen)

    assert first.updated_at > job.updated_at
    assert second.updated_at > first.updated_at


def test_apply_update_does_not_mutate_input():
    job = new_job(_request())
    apply_update(job, JobUpdate(status=JobStatus.PROCESSING))
    assert job.status == JobStatus.PENDING


def test_unset_fields_are_left_alone():
    job = new_job(_request(), provider_used=Provider.GEMINI)
    updated = apply_update(job, JobUpdate(status=JobStatus.PROCESSING))
    assert updated.provider_used == Provider.GEMINI


@pytest.mark.asyncio
async def test_list_newest_first_with_pagination(store):
    base = datetime(2026, 1, 1)
    ids = []
    for i in range(5):
        job = new_job(_request())
        job.created_at = job.updated_at = base + timedelta(seconds=i)
        await store.create(job)
        ids.append(job.id)

    page = await store.list(limit=2, offset=0)
    assert [j.id for j in page] == [ids[4], ids[3]]

    page = await store.list(limit=2, offset=2)
    assert [j.id for j in page] == [ids[2], ids[1]]


@pytest.mark.asyncio
async def test_count_by_status_and_delete(store):
    first = await store.create(new_job(_request()))
    second = await store.create(new_job(_request(Task.POLISH)))
    await store.update(second.id, JobUpdate(status=JobStatus.FAILED, error="x"))

    counts = await store.count_by_status()
    assert counts[JobStatus.PENDING] == 1
    assert counts[JobStatus.FAILED] == 1
    assert counts[JobStatus.COMPLETED] == 0

    assert await store.delete(first.id) is True
    assert await store.delete(first.id) is False
    assert len(store) == 1

    store.clear()
    assert len(store) == 0
