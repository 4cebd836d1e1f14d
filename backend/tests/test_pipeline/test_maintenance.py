"""Tests for the scheduled maintenance handlers."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from models.schemas.article import Article
from models.schemas.jobs import JobKind, MaintenanceJob
from models.schemas.skill_record import SkillRecord
from services.cache.user_cache import Namespace
from services.content.prioritizer import ContentPrioritizer
from services.content.sources import ArticleSource
from services.pipeline.maintenance import (
    ContentRefreshHandler,
    WeeklySummaryHandler,
    build_weekly_summary,
)
from services.repository import InMemoryAnalysisRepository

NOW = datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)


def _source(calls):
    async def fetch(client, skill, timeout):
        calls.append(skill)
        return [{"title": f"{skill} guide", "url": f"https://x/{skill}", "reading_time": 8, "tag": skill}]

    return ArticleSource("Static", fetch, lambda item: True, Article.model_validate)


def test_build_weekly_summary():
    skills = [
        SkillRecord(name="python", level=60, target_level=80, progress=50, last_practiced=NOW - timedelta(days=2)),
        SkillRecord(name="docker", level=30, target_level=70, progress=10, last_practiced=NOW - timedelta(days=30)),
    ]
    summary = build_weekly_summary(skills, 82, NOW)
    assert summary["skills_tracked"] == 2
    assert summary["skills_practiced"] == ["python"]
    assert summary["average_progress"] == 30.0
    assert summary["focus_skills"] == ["docker", "python"]
    assert summary["latest_score"] == 82


def test_build_weekly_summary_without_skills():
    summary = build_weekly_summary([], None, NOW)
    assert summary["average_progress"] == 0.0
    assert summary["focus_skills"] == []


@pytest.mark.asyncio
async def test_content_refresh_rebuilds_for_active_users(cache):
    calls = []
    prioritizer = ContentPrioritizer(cache, sources=[_source(calls)], http_client=httpx.AsyncClient())
    handler = ContentRefreshHandler(cache, prioritizer)
    assert handler.kind == JobKind.CONTENT_REFRESH

    await cache.publish_analysis("u1", {"score": 70}, [SkillRecord(name="Python", level=40, target_level=70)])
    await cache.set_skill_progress("idle", [SkillRecord(name="Go", level=10, target_level=70)])
    await cache.set(Namespace.RECOMMENDATIONS, "u1", [])

    await handler.process(MaintenanceJob(kind=JobKind.CONTENT_REFRESH))

    assert calls == ["python"]
    recommendations = await cache.get(Namespace.RECOMMENDATIONS, "u1")
    assert [r["url"] for r in recommendations] == ["https://x/python"]


@pytest.mark.asyncio
async def test_weekly_summary_written_for_every_user(cache):
    repository = InMemoryAnalysisRepository()
    await repository.update("u1", {
        "resume_analysis": {"score": 77},
        "skills": [SkillRecord(name="react", level=50, target_level=70, progress=20).model_dump(mode="json")],
    })
    await repository.update("u2", {})
    await cache.set_skill_progress("u2", [SkillRecord(name="vue", progress=60, last_practiced=NOW)])

    handler = WeeklySummaryHandler(cache, repository, now=lambda: NOW)
    await handler.process(MaintenanceJob(kind=JobKind.WEEKLY_SUMMARY))

    u1 = (await repository.get_user("u1"))["weekly_summary"]
    u2 = (await repository.get_user("u2"))["weekly_summary"]
    assert u1["latest_score"] == 77
    assert u1["focus_skills"] == ["react"]
    assert u2["skills_practiced"] == ["vue"]
    assert u2["latest_score"] is None
