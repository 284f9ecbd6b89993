"""Tests for the jobs outbox and the job runner."""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select, update

from lms.models.enums import JobStatus
from lms.models.jobs import JobsOutbox
from lms.services.job_runner import JobRunner
from lms.services.jobs import JOB_ACTIVITY_LOG, JobsService


async def load_job(db, job_id) -> JobsOutbox:
    result = await db.execute(
        select(JobsOutbox).where(JobsOutbox.id == job_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestJobsService:
    @pytest.mark.asyncio
    async def test_unique_scope_deduplicates(self, db):
        jobs = JobsService(db)

        first = await jobs.enqueue("ago_sync", {"property_id": "p1"}, unique_scope="ago_sync:property:p1")
        second = await jobs.enqueue("ago_sync", {"property_id": "p1"}, unique_scope="ago_sync:property:p1")
        await db.commit()

        assert first is not None
        assert second is None
        rows = (await db.execute(select(JobsOutbox))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_enqueue_without_commit_is_rolled_back(self, db):
        await JobsService(db).enqueue("activity_log", {})
        await db.rollback()

        assert (await db.execute(select(JobsOutbox))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_claim_marks_processing(self, db):
        jobs = JobsService(db)
        job_id = await jobs.enqueue("activity_log", {"n": 1})
        await db.commit()

        claimed = await jobs.claim_jobs()

        assert [job.id for job in claimed] == [job_id]
        assert claimed[0].status == JobStatus.PROCESSING
        assert claimed[0].attempts == 1
        assert await jobs.claim_jobs() == []

    @pytest.mark.asyncio
    async def test_delayed_job_not_claimed(self, db):
        jobs = JobsService(db)
        await jobs.enqueue("activity_log", {}, run_after=datetime.utcnow() + timedelta(hours=1))
        await db.commit()

        assert await jobs.claim_jobs() == []

    @pytest.mark.asyncio
    async def test_fail_until_dead_letter(self, db):
        jobs = JobsService(db, max_attempts=2)
        job_id = await jobs.enqueue("notify", {})
        await db.commit()

        await jobs.claim_jobs()
        assert await jobs.fail_job(job_id, "boom") == JobStatus.PENDING

        await jobs.claim_jobs()
        assert await jobs.fail_job(job_id, "boom again") == JobStatus.DEAD_LETTER

        job = await load_job(db, job_id)
        assert job.last_error == "boom again"
        assert job.attempts == 2

    @pytest.mark.asyncio
    async def test_release_stale_jobs(self, db):
        jobs = JobsService(db)
        job_id = await jobs.enqueue("notify", {})
        await db.commit()
        await jobs.claim_jobs()
        await db.execute(
            update(JobsOutbox)
            .where(JobsOutbox.id == job_id)
            .values(started_at=datetime.utcnow() - timedelta(hours=1))
        )
        await db.commit()

        assert await jobs.release_stale_jobs() == 1
        assert (await load_job(db, job_id)).status == JobStatus.PENDING


class TestJobRunner:
    @pytest.mark.asyncio
    async def test_unknown_type_dead_letters(self, db):
        job_id = await JobsService(db).enqueue("send_fax", {})
        await db.commit()

        summary = await JobRunner(db).run_jobs([job_id])

        assert summary == {"processed": 1, "completed": 0, "failed": 1}
        job = await load_job(db, job_id)
        assert job.status == JobStatus.DEAD_LETTER
        assert job.last_error == "Unknown job type: send_fax"

    @pytest.mark.asyncio
    async def test_run_jobs_ignores_missing_ids(self, db):
        summary = await JobRunner(db).run_jobs([None, None])
        assert summary == {"processed": 0, "completed": 0, "failed": 0}

    @pytest.mark.asyncio
    async def test_completed_job(self, db):
        runner = JobRunner(db)
        calls = []

        async def record(payload):
            calls.append(payload)

        runner.handlers[JOB_ACTIVITY_LOG] = record
        job_id = await runner.jobs.enqueue(JOB_ACTIVITY_LOG, {"entity_id": str(uuid.uuid4())})
        await db.commit()

        await runner.run_after_commit([job_id])

        assert len(calls) == 1
        job = await load_job(db, job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.completed_at is not None

    @pytest.mark.asyncio
    async def test_handler_failure_left_for_sweep(self, db):
        runner = JobRunner(db)

        async def broken(payload):
            raise RuntimeError("database unavailable")

        runner.handlers[JOB_ACTIVITY_LOG] = broken
        job_id = await runner.jobs.enqueue(JOB_ACTIVITY_LOG, {})
        await db.commit()

        summary = await runner.run_jobs([job_id])

        assert summary["failed"] == 1
        job = await load_job(db, job_id)
        assert job.status == JobStatus.PENDING
        assert job.last_error == "database unavailable"
