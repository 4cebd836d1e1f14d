"""Namespaced, TTL-based cache for per-user dashboard state.

Key layout (``namespace:user_id[:extra]``):

    dashboard:{user}                 analysis payload shown on the dashboard   1h
    skills:{user}                    list of SkillRecord                       24h
    articles:{user}                  full ranked article feed                  6h
    recommendations:{user}           top ranked articles                       30m
    ner:{sha256(text)}               entity extraction result                  24h
    per-skill-articles:{user}:{s}    fetched articles for one skill            6h
    resume:{user}:{job_id}           terminal job result for pollers           retention window
    user:{user}:last_activity        ISO timestamp of the last dashboard write 2h

Every entry is derived state: a missing, expired or corrupt entry reads as
None and callers recompute. Only this class writes to the store.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable
from weakref import WeakValueDictionary

from pydantic import BaseModel, ValidationError

from models.schemas.skill_record import SkillRecord
from services.cache.store import CacheStore
from services.errors import InvariantViolation

logger = logging.getLogger(__name__)


class Namespace(str, Enum):
    DASHBOARD = "dashboard"
    SKILLS = "skills"
    ARTICLES = "articles"
    RECOMMENDATIONS = "recommendations"
    NER = "ner"
    SKILL_ARTICLES = "per-skill-articles"
    JOB_RESULT = "resume"


NAMESPACE_TTLS: dict[Namespace, int] = {
    Namespace.DASHBOARD: 3600,
    Namespace.SKILLS: 86400,
    Namespace.ARTICLES: 21600,
    Namespace.RECOMMENDATIONS: 1800,
    Namespace.NER: 86400,
    Namespace.SKILL_ARTICLES: 21600,
}

# Namespaces dropped together when a user's analysis changes
USER_NAMESPACES: tuple[Namespace, ...] = (
    Namespace.DASHBOARD,
    Namespace.SKILLS,
    Namespace.ARTICLES,
    Namespace.RECOMMENDATIONS,
)

ACTIVITY_TTL = NAMESPACE_TTLS[Namespace.DASHBOARD] * 2


def cache_key(namespace: Namespace, user_id: str, extra: str | None = None) -> str:
    key = f"{Namespace(namespace).value}:{user_id}"
    if extra is not None:
        key = f"{key}:{extra}"
    return key


_ACTIVITY_PREFIX = "user:"
_ACTIVITY_SUFFIX = ":last_activity"


def activity_key(user_id: str) -> str:
    return f"{_ACTIVITY_PREFIX}{user_id}{_ACTIVITY_SUFFIX}"


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def merge_skills(existing: list[SkillRecord], incoming: list[SkillRecord]) -> list[SkillRecord]:
    """Merge freshly assessed skills into stored ones.

    A name match (case-insensitive) keeps the stored ``progress`` and
    ``last_practiced``; ``level``, ``target_level`` and ``category`` come from
    the incoming record. Unmatched incoming records are taken as-is.
    """
    by_name = {s.name.casefold(): s for s in existing}
    merged: list[SkillRecord] = []
    for skill in incoming:
        prior = by_name.get(skill.name.casefold())
        if prior is None:
            merged.append(skill)
        else:
            merged.append(
                skill.model_copy(
                    update={"progress": prior.progress, "last_practiced": prior.last_practiced}
                )
            )
    return merged


class UserCache:
    def __init__(
        self,
        store: CacheStore,
        job_result_ttl: int = 86400,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._job_result_ttl = job_result_ttl
        self._now = now
        self._user_locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        # Entries vanish once no writer holds or awaits the lock
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    @property
    def backend(self) -> str:
        return self._store.name

    def ttl_for(self, namespace: Namespace) -> int:
        if namespace == Namespace.JOB_RESULT:
            return self._job_result_ttl
        return NAMESPACE_TTLS[namespace]

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    def _decode(self, key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise InvariantViolation(f"Corrupt cache entry {key}: {e}") from e

    async def _discard(self, key: str) -> None:
        try:
            await self._store.delete(key)
        except Exception as e:
            logger.warning("Failed to discard cache entry %s: %s", key, e)

    async def get(self, namespace: Namespace, user_id: str, extra: str | None = None) -> Any | None:
        """Return the cached value, or None on miss, expiry, corruption or outage."""
        key = cache_key(namespace, user_id, extra)
        try:
            raw = await self._store.get(key)
        except Exception as e:
            logger.warning("Cache read %s failed, treating as miss: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return self._decode(key, raw)
        except InvariantViolation as e:
            logger.warning("%s; discarding", e)
            await self._discard(key)
            return None

    async def set(self, namespace: Namespace, user_id: str, value: Any, extra: str | None = None) -> None:
        """Write ``value`` with the namespace's fixed TTL."""
        key = cache_key(namespace, user_id, extra)
        payload = json.dumps(_to_jsonable(value))
        await self._store.set(key, payload, self.ttl_for(Namespace(namespace)))

    async def invalidate(self, namespace: Namespace, user_id: str, extra: str | None = None) -> None:
        await self._store.delete(cache_key(namespace, user_id, extra))

    async def invalidate_all(self, user_id: str) -> bool:
        """Drop all four user namespaces concurrently.

        Best-effort: a failed delete is logged and does not stop the others.
        Returns True when every delete succeeded.
        """
        results = await asyncio.gather(
            *(self.invalidate(ns, user_id) for ns in USER_NAMESPACES),
            return_exceptions=True,
        )
        ok = True
        for ns, result in zip(USER_NAMESPACES, results):
            if isinstance(result, Exception):
                ok = False
                logger.error("Failed to invalidate %s cache for user %s: %s", ns.value, user_id, result)
        return ok

    async def get_user_data(self, user_id: str) -> dict[str, Any]:
        dashboard, skills, articles, recommendations = await asyncio.gather(
            *(self.get(ns, user_id) for ns in USER_NAMESPACES)
        )
        return {
            "dashboard": dashboard,
            "skills": skills,
            "articles": articles,
            "recommendations": recommendations,
        }

    # ------------------------------------------------------------------
    # Dashboard and activity
    # ------------------------------------------------------------------

    async def set_dashboard(self, user_id: str, dashboard: Any) -> None:
        await self.set(Namespace.DASHBOARD, user_id, dashboard)
        await self._store.set(
            activity_key(user_id), json.dumps(self._now().isoformat()), ACTIVITY_TTL
        )

    async def get_user_activity(self, user_id: str) -> str | None:
        try:
            raw = await self._store.get(activity_key(user_id))
        except Exception as e:
            logger.warning("Cache read of activity for %s failed: %s", user_id, e)
            return None
        if raw is None:
            return None
        try:
            return self._decode(activity_key(user_id), raw)
        except InvariantViolation as e:
            logger.warning("%s; discarding", e)
            await self._discard(activity_key(user_id))
            return None

    async def active_user_ids(self) -> list[str]:
        """Users with a dashboard write inside the activity window."""
        keys = await self._store.keys(activity_key("*"))
        return sorted(k[len(_ACTIVITY_PREFIX):-len(_ACTIVITY_SUFFIX)] for k in keys)

    # ------------------------------------------------------------------
    # Skill progress
    # ------------------------------------------------------------------

    async def get_skill_progress(self, user_id: str) -> list[SkillRecord] | None:
        data = await self.get(Namespace.SKILLS, user_id)
        if data is None:
            return None
        try:
            return [SkillRecord.model_validate(item) for item in data]
        except (TypeError, ValidationError) as e:
            logger.warning("Corrupt skills entry for user %s: %s; discarding", user_id, e)
            await self._discard(cache_key(Namespace.SKILLS, user_id))
            return None

    async def _merge_and_write(self, user_id: str, skills: list[SkillRecord]) -> list[SkillRecord]:
        existing = await self.get_skill_progress(user_id) or []
        merged = merge_skills(existing, skills)
        await self.set(Namespace.SKILLS, user_id, merged)
        return merged

    async def set_skill_progress(self, user_id: str, skills: list[SkillRecord]) -> list[SkillRecord]:
        """Read-modify-write merge of freshly assessed skills.

        Serialized per user within this process so concurrent merges cannot
        lose each other's updates.
        """
        async with self._lock_for(user_id):
            return await self._merge_and_write(user_id, skills)

    async def update_skill_progress(self, user_id: str, skill_name: str, delta: int) -> list[SkillRecord]:
        """Bump one skill's progress (capped at 100) and stamp last_practiced."""
        async with self._lock_for(user_id):
            skills = await self.get_skill_progress(user_id) or []
            now = self._now()
            updated = [
                s.model_copy(
                    update={
                        "progress": max(0, min(s.progress + delta, 100)),
                        "last_practiced": now,
                    }
                )
                if s.name.casefold() == skill_name.casefold()
                else s
                for s in skills
            ]
            await self.set(Namespace.SKILLS, user_id, updated)
            return updated

    async def publish_analysis(
        self, user_id: str, dashboard: Any, skills: list[SkillRecord]
    ) -> list[SkillRecord]:
        """Write a fresh analysis for ``user_id``.

        Skills are merged against the stored records first, then every user
        namespace is invalidated (dropping recommendations and article
        rankings tied to the old skill gaps), then the dashboard and merged
        skills are written.
        """
        async with self._lock_for(user_id):
            existing = await self.get_skill_progress(user_id) or []
            merged = merge_skills(existing, skills)
            await self.invalidate_all(user_id)
            await self.set_dashboard(user_id, dashboard)
            await self.set(Namespace.SKILLS, user_id, merged)
            return merged

    # ------------------------------------------------------------------
    # Job results
    # ------------------------------------------------------------------

    async def set_job_result(self, user_id: str, job_id: str, payload: dict[str, Any]) -> None:
        await self.set(Namespace.JOB_RESULT, user_id, payload, extra=job_id)

    async def get_job_result(self, user_id: str, job_id: str) -> dict[str, Any] | None:
        return await self.get(Namespace.JOB_RESULT, user_id, extra=job_id)

    async def close(self) -> None:
        await self._store.close()
