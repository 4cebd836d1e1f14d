"""Queue job records. Owned exclusively by the job pipeline."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobKind(str, Enum):
    RESUME_ANALYSIS = "resume-analysis"
    CONTENT_REFRESH = "content-refresh"
    WEEKLY_SUMMARY = "weekly-summary"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseJob(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: JobKind
    submitted_at: datetime = Field(default_factory=_utc_now)
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    max_attempts: int = 3
    last_error: str | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class AnalysisJob(BaseJob):
    """A resume uploaded by a user, waiting to be analyzed."""
    kind: JobKind = JobKind.RESUME_ANALYSIS
    user_id: str
    document_path: str
    document_type: str
    original_filename: str = ""


class MaintenanceJob(BaseJob):
    """A scheduled housekeeping run (content refresh, weekly summary)."""
