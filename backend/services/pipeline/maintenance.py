"""Scheduled housekeeping handlers: content refresh and weekly summary."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from models.schemas.jobs import JobKind, MaintenanceJob
from models.schemas.skill_record import SkillRecord
from services.cache.user_cache import UserCache
from services.content.prioritizer import ContentPrioritizer, prioritize_skills
from services.pipeline.base import JobHandler
from services.repository import AnalysisRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContentRefreshHandler(JobHandler):
    """Rebuild article recommendations for recently active users."""

    kind = JobKind.CONTENT_REFRESH

    def __init__(self, cache: UserCache, prioritizer: ContentPrioritizer) -> None:
        self._cache = cache
        self._prioritizer = prioritizer

    async def process(self, job: MaintenanceJob) -> None:
        user_ids = await self._cache.active_user_ids()
        for user_id in user_ids:
            articles = await self._prioritizer.refresh(user_id)
            logger.debug("Refreshed %d articles for user %s", len(articles), user_id)
        logger.info("Content refresh complete for %d active users", len(user_ids))


def build_weekly_summary(
    skills: list[SkillRecord], score: int | None, generated_at: datetime
) -> dict[str, Any]:
    week_ago = generated_at.timestamp() - 7 * 86400
    practiced = [
        s.name
        for s in skills
        if s.last_practiced is not None and s.last_practiced.timestamp() >= week_ago
    ]
    return {
        "generated_at": generated_at.isoformat(),
        "skills_tracked": len(skills),
        "skills_practiced": practiced,
        "average_progress": round(sum(s.progress for s in skills) / len(skills), 1) if skills else 0.0,
        "focus_skills": [s.name for s in prioritize_skills(skills, limit=3)],
        "latest_score": score,
    }


class WeeklySummaryHandler(JobHandler):
    """Store a progress digest on every user document."""

    kind = JobKind.WEEKLY_SUMMARY

    def __init__(
        self,
        cache: UserCache,
        repository: AnalysisRepository,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._cache = cache
        self._repository = repository
        self._now = now

    async def _skills_for(self, user_id: str, document: dict[str, Any]) -> list[SkillRecord]:
        cached = await self._cache.get_skill_progress(user_id)
        if cached is not None:
            return cached
        return [SkillRecord.model_validate(s) for s in document.get("skills") or []]

    async def process(self, job: MaintenanceJob) -> None:
        generated_at = self._now()
        user_ids = await self._repository.user_ids()
        for user_id in user_ids:
            document = await self._repository.get_user(user_id) or {}
            skills = await self._skills_for(user_id, document)
            score = (document.get("resume_analysis") or {}).get("score")
            summary = build_weekly_summary(skills, score, generated_at)
            await self._repository.update(user_id, {"weekly_summary": summary})
        logger.info("Weekly summary written for %d users", len(user_ids))
