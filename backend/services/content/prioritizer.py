"""Skill-gap driven article recommendations.

Skills with the largest positive gap (target_level - level) pick the
articles; each article is scored by gap, tag match, freshness and reading
time, and the best six are served.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import httpx

from models.schemas.article import Article, RankedArticle
from models.schemas.skill_record import SkillRecord
from services.cache.user_cache import Namespace, UserCache
from services.content.sources import (
    MAX_ARTICLES_PER_SKILL,
    SOURCES,
    ArticleSource,
    deduplicate,
    fetch_from_source,
)

logger = logging.getLogger(__name__)

MAX_PRIORITY_SKILLS = 5
TOP_ARTICLES = 6
FRESH_DAYS = 7
OPTIMAL_READING_TIME = (5, 15)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PrioritizedSkill:
    name: str
    gap: int
    category: str = "other"


def prioritize_skills(skills: Sequence[SkillRecord], limit: int = MAX_PRIORITY_SKILLS) -> list[PrioritizedSkill]:
    """Skills with a positive gap, largest gap first."""
    candidates = [
        PrioritizedSkill(name=s.name.lower(), gap=s.gap, category=s.category or "other")
        for s in skills
    ]
    positive = [c for c in candidates if c.gap > 0]
    positive.sort(key=lambda c: c.gap, reverse=True)
    return positive[:limit]


def _parse_published(value: str) -> datetime | None:
    if not value:
        return None
    try:
        published = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def calculate_relevance(skill: PrioritizedSkill, article: Article, now: datetime | None = None) -> float:
    now = now or _utc_now()
    relevance = skill.gap / 100

    if article.tag.lower() == skill.name.lower():
        relevance += 0.3

    published = _parse_published(article.published_at)
    if published is not None and (now - published).total_seconds() < FRESH_DAYS * 86400:
        relevance += 0.2

    low, high = OPTIMAL_READING_TIME
    if low <= article.reading_time <= high:
        relevance += 0.1

    return min(relevance, 1.0)


class ContentPrioritizer:
    def __init__(
        self,
        cache: UserCache,
        sources: Sequence[ArticleSource] = SOURCES,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._cache = cache
        self._sources = tuple(sources)
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)
        self._owns_client = http_client is None
        self._timeout = timeout
        self._now = now

    async def fetch_articles_for_skill(self, skill: str) -> list[Article]:
        results = await asyncio.gather(
            *(fetch_from_source(self._client, source, skill, self._timeout) for source in self._sources)
        )
        return deduplicate([article for batch in results for article in batch])

    async def _cached_articles(self, user_id: str, skill: str) -> list[Article] | None:
        data = await self._cache.get(Namespace.SKILL_ARTICLES, user_id, extra=skill)
        if data is None:
            return None
        try:
            return [Article.model_validate(item) for item in data]
        except (TypeError, ValueError) as e:
            logger.warning("Corrupt article cache for %s/%s: %s; refetching", user_id, skill, e)
            return None

    async def _articles_for(self, user_id: str, skill: str) -> list[Article]:
        cached = await self._cached_articles(user_id, skill)
        if cached is not None:
            return cached

        articles = (await self.fetch_articles_for_skill(skill))[:MAX_ARTICLES_PER_SKILL]
        try:
            await self._cache.set(Namespace.SKILL_ARTICLES, user_id, articles, extra=skill)
        except Exception as e:
            logger.warning("Failed to cache articles for %s/%s: %s", user_id, skill, e)
        return articles

    async def rank(self, user_id: str, skills: Sequence[SkillRecord] | None = None) -> list[RankedArticle]:
        """Top articles for the user's largest skill gaps.

        ``skills`` defaults to the cached skill progress. The full ranked list
        is cached under the user's ``articles`` namespace.
        """
        if skills is None:
            skills = await self._cache.get_skill_progress(user_id) or []
        prioritized = prioritize_skills(skills)
        if not prioritized:
            return []

        per_skill = await asyncio.gather(*(self._articles_for(user_id, s.name) for s in prioritized))

        now = self._now()
        ranked = [
            RankedArticle(
                **article.model_dump(),
                skill=skill.name,
                category=skill.category,
                relevance=round(calculate_relevance(skill, article, now), 2),
            )
            for skill, articles in zip(prioritized, per_skill)
            for article in articles
        ]
        ranked.sort(key=lambda a: a.relevance, reverse=True)
        ranked = deduplicate(ranked)

        try:
            await self._cache.set(Namespace.ARTICLES, user_id, ranked)
        except Exception as e:
            logger.warning("Failed to cache ranked articles for %s: %s", user_id, e)
        return ranked[:TOP_ARTICLES]

    async def recommend(self, user_id: str) -> list[RankedArticle]:
        cached = await self._cache.get(Namespace.RECOMMENDATIONS, user_id)
        if cached is not None:
            try:
                return [RankedArticle.model_validate(item) for item in cached]
            except (TypeError, ValueError) as e:
                logger.warning("Corrupt recommendations for %s: %s; re-ranking", user_id, e)

        recommendations = await self.rank(user_id)
        try:
            await self._cache.set(Namespace.RECOMMENDATIONS, user_id, recommendations)
        except Exception as e:
            logger.warning("Failed to cache recommendations for %s: %s", user_id, e)
        return recommendations

    async def refresh(self, user_id: str) -> list[RankedArticle]:
        """Drop the user's article caches and rebuild recommendations."""
        skills = await self._cache.get_skill_progress(user_id) or []
        for skill in prioritize_skills(skills):
            await self._cache.invalidate(Namespace.SKILL_ARTICLES, user_id, extra=skill.name)
        await self._cache.invalidate(Namespace.ARTICLES, user_id)
        await self._cache.invalidate(Namespace.RECOMMENDATIONS, user_id)
        return await self.recommend(user_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
