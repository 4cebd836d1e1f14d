"""End-to-end tests for the resume analysis job."""

import os
import time
from contextlib import asynccontextmanager

import pytest

from models.schemas.jobs import AnalysisJob, JobStatus
from models.schemas.skill_record import SkillRecord
from services.cache.user_cache import Namespace
from services.entity_analyzer import EntityAnalyzer
from services.errors import UnsupportedFormat
from services.pipeline.analysis import ResumeAnalyzer
from services.pipeline.job_queue import JobQueue
from services.pipeline.resume_processor import ResumeAnalysisHandler, sweep_orphaned_uploads
from services.repository import InMemoryAnalysisRepository
from services.sentiment_analyzer import SentimentAnalyzer
from services.text_extractor import TEXT_MIME

RESUME_TEXT = "JavaScript developer at Google. Built React dashboards and Docker tooling."


class FlakyAnalyzer:
    """Fails the first ``failures`` calls, then delegates."""

    def __init__(self, inner, failures=1):
        self.inner = inner
        self.failures = failures
        self.calls = 0

    async def analyze(self, text):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("inference cluster restarting")
        return await self.inner.analyze(text)


@pytest.fixture
def repository():
    return InMemoryAnalysisRepository()


@pytest.fixture
def analyzer(cache, failing_inference):
    return ResumeAnalyzer(EntityAnalyzer(failing_inference, cache), SentimentAnalyzer(failing_inference))


@pytest.fixture
def resume_file(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text(RESUME_TEXT, encoding="utf-8")
    return path


@asynccontextmanager
async def running_queue(handler):
    queue = JobQueue([handler], concurrency=2, backoff_base_seconds=0.01)
    await queue.start()
    try:
        yield queue
    finally:
        await queue.stop()


def _job(path, document_type=TEXT_MIME, user_id="user-1"):
    return AnalysisJob(
        user_id=user_id, document_path=str(path), document_type=document_type, original_filename="resume.txt"
    )


@pytest.mark.asyncio
async def test_successful_analysis_publishes_everything(cache, repository, analyzer, resume_file):
    handler = ResumeAnalysisHandler(analyzer, cache, repository)
    async with running_queue(handler) as queue:
        job = await queue.wait_for(await queue.submit(_job(resume_file)), timeout=10)

    assert job.status == JobStatus.SUCCEEDED

    stored = await cache.get_job_result("user-1", job.id)
    assert stored["status"] == "succeeded"
    assert "Google" in stored["result"]["entities"]["companies"]
    assert "javascript" in stored["result"]["entities"]["skills"]

    data = await cache.get_user_data("user-1")
    assert data["dashboard"]["score"] == stored["result"]["score"]
    assert "javascript" in {s["name"] for s in data["skills"]}

    assert len(repository.records) == 1
    assert repository.records[0].file_size == len(RESUME_TEXT)
    user_doc = await repository.get_user("user-1")
    assert user_doc["last_analysis_job"] == job.id
    assert not resume_file.exists()


@pytest.mark.asyncio
async def test_reanalysis_keeps_progress_and_drops_recommendations(cache, repository, analyzer, resume_file):
    await cache.set_skill_progress("user-1", [SkillRecord(name="javascript", level=60, target_level=80)])
    await cache.update_skill_progress("user-1", "javascript", 35)
    await cache.set(Namespace.RECOMMENDATIONS, "user-1", [{"title": "stale"}])

    handler = ResumeAnalysisHandler(analyzer, cache, repository)
    async with running_queue(handler) as queue:
        await queue.wait_for(await queue.submit(_job(resume_file)), timeout=10)

    skills = {s.name: s for s in await cache.get_skill_progress("user-1")}
    assert skills["javascript"].progress == 35
    assert await cache.get(Namespace.RECOMMENDATIONS, "user-1") is None


@pytest.mark.asyncio
async def test_unsupported_type_is_rejected_before_queueing(cache, repository, analyzer, tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG")
    handler = ResumeAnalysisHandler(analyzer, cache, repository)
    queue = JobQueue([handler])

    with pytest.raises(UnsupportedFormat, match="Unsupported file type"):
        await queue.submit(_job(path, document_type="image/png"))

    assert queue.depth == 0
    assert repository.records == []


@pytest.mark.asyncio
async def test_missing_upload_fails_permanently(cache, repository, analyzer, tmp_path):
    handler = ResumeAnalysisHandler(analyzer, cache, repository)
    async with running_queue(handler) as queue:
        job = await queue.wait_for(await queue.submit(_job(tmp_path / "gone.txt")), timeout=10)

    assert job.status == JobStatus.FAILED
    assert job.attempts == 1


@pytest.mark.asyncio
async def test_transient_failure_is_retried_with_file_intact(cache, repository, analyzer, resume_file):
    flaky = FlakyAnalyzer(analyzer, failures=1)
    handler = ResumeAnalysisHandler(flaky, cache, repository)
    async with running_queue(handler) as queue:
        job = await queue.wait_for(await queue.submit(_job(resume_file)), timeout=10)

    assert job.status == JobStatus.SUCCEEDED
    assert job.attempts == 2
    assert flaky.calls == 2
    assert (await cache.get_job_result("user-1", job.id))["status"] == "succeeded"
    assert not resume_file.exists()


@pytest.mark.asyncio
async def test_exhausted_retries_leave_failure_entry(cache, repository, analyzer, resume_file):
    flaky = FlakyAnalyzer(analyzer, failures=5)
    handler = ResumeAnalysisHandler(flaky, cache, repository)
    async with running_queue(handler) as queue:
        job = await queue.wait_for(await queue.submit(_job(resume_file)), timeout=10)

    assert job.status == JobStatus.FAILED
    stored = await cache.get_job_result("user-1", job.id)
    assert stored == {
        "status": "failed",
        "error": "attempt 3/3: inference cluster restarting",
        "attempts": 3,
        "final": True,
        "timestamp": stored["timestamp"],
    }
    assert not resume_file.exists()


def test_sweep_orphaned_uploads(tmp_path):
    old = tmp_path / "old.pdf"
    fresh = tmp_path / "fresh.pdf"
    old.write_bytes(b"x")
    fresh.write_bytes(b"y")
    stale = time.time() - 7200
    os.utime(old, (stale, stale))

    assert sweep_orphaned_uploads(tmp_path, max_age_seconds=3600) == 1
    assert not old.exists()
    assert fresh.exists()
    assert sweep_orphaned_uploads(tmp_path / "missing", max_age_seconds=3600) == 0
