"""Persistence collaborator for completed analyses and per-user aggregates.

The pipeline only relies on ``save`` and ``update``; a document database
adapter implements the same interface in deployment.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from models.schemas.analysis_result import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisRecord(BaseModel):
    """One stored resume analysis."""
    user_id: str
    job_id: str
    original_filename: str = ""
    document_type: str = ""
    file_size: int = 0
    analysis_result: AnalysisResult
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AnalysisRepository(ABC):
    @abstractmethod
    async def save(self, record: AnalysisRecord) -> None:
        """Durably store a completed analysis."""

    @abstractmethod
    async def update(self, user_id: str, fields: dict[str, Any]) -> None:
        """Set top-level aggregate fields on the user's document."""

    @abstractmethod
    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        """Return the user's aggregate document, if any."""

    @abstractmethod
    async def user_ids(self) -> list[str]:
        """All users with an aggregate document."""


class InMemoryAnalysisRepository(AnalysisRepository):
    def __init__(self) -> None:
        self._records: list[AnalysisRecord] = []
        self._users: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    @property
    def records(self) -> list[AnalysisRecord]:
        return list(self._records)

    async def save(self, record: AnalysisRecord) -> None:
        async with self._lock:
            self._records.append(record)
        logger.debug("Saved analysis %s for user %s", record.job_id, record.user_id)

    async def update(self, user_id: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            self._users.setdefault(user_id, {"user_id": user_id}).update(copy.deepcopy(fields))

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user is not None else None

    async def user_ids(self) -> list[str]:
        return sorted(self._users)
