"""Resume analysis job: extract → analyze → publish → persist.

The uploaded file is removed once the job is terminal (success or final
failure); retries re-read it. ``sweep_orphaned_uploads`` removes files left
behind by a crashed process.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from models.schemas.jobs import AnalysisJob, JobKind
from services import text_extractor
from services.cache.user_cache import UserCache
from services.errors import MissingDocument
from services.pipeline.analysis import ResumeAnalyzer
from services.pipeline.base import JobHandler
from services.repository import AnalysisRecord, AnalysisRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def remove_upload(path: str | Path) -> bool:
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Failed to remove upload %s: %s", path, e)
        return False
    logger.debug("Removed upload %s", path)
    return True


def sweep_orphaned_uploads(upload_dir: str | Path, max_age_seconds: int) -> int:
    """Delete uploads older than ``max_age_seconds``; returns how many went."""
    directory = Path(upload_dir)
    if not directory.is_dir():
        return 0
    cutoff = time.time() - max_age_seconds
    removed = 0
    for path in directory.iterdir():
        if path.is_file() and path.stat().st_mtime < cutoff and remove_upload(path):
            removed += 1
    if removed:
        logger.info("Swept %d orphaned uploads from %s", removed, directory)
    return removed


class ResumeAnalysisHandler(JobHandler):
    kind = JobKind.RESUME_ANALYSIS

    def __init__(
        self,
        analyzer: ResumeAnalyzer,
        cache: UserCache,
        repository: AnalysisRepository,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._analyzer = analyzer
        self._cache = cache
        self._repository = repository
        self._now = now

    def validate(self, job: AnalysisJob) -> None:
        text_extractor.ensure_supported(job.document_type)

    async def process(self, job: AnalysisJob) -> None:
        path = Path(job.document_path)
        if not path.is_file():
            raise MissingDocument(str(path))
        file_size = path.stat().st_size

        text = await asyncio.to_thread(text_extractor.extract, path, job.document_type)
        result, skills = await self._analyzer.analyze(text)

        merged = await self._cache.publish_analysis(job.user_id, result, skills)

        await self._repository.save(
            AnalysisRecord(
                user_id=job.user_id,
                job_id=job.id,
                original_filename=job.original_filename,
                document_type=job.document_type,
                file_size=file_size,
                analysis_result=result,
            )
        )
        await self._repository.update(
            job.user_id,
            {
                "resume_analysis": result.model_dump(mode="json"),
                "skills": [s.model_dump(mode="json") for s in merged],
                "last_analysis_job": job.id,
            },
        )

        await self._cache.set_job_result(
            job.user_id,
            job.id,
            {"status": "succeeded", "result": result, "timestamp": self._timestamp()},
        )
        logger.info("Resume analysis %s stored for user %s (score=%d)", job.id, job.user_id, result.score)

    async def on_success(self, job: AnalysisJob) -> None:
        remove_upload(job.document_path)

    async def on_failure(self, job: AnalysisJob, error: Exception, final: bool) -> None:
        payload: dict[str, Any] = {
            "status": "failed",
            "error": job.last_error or str(error),
            "attempts": job.attempts,
            "final": final,
            "timestamp": self._timestamp(),
        }
        try:
            await self._cache.set_job_result(job.user_id, job.id, payload)
        finally:
            if final:
                remove_upload(job.document_path)

    def _timestamp(self) -> str:
        return self._now().isoformat()
