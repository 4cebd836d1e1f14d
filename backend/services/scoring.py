"""Overall resume score, skill assessment and strengths/improvements.

Pure functions over analyzer outputs; no I/O.
"""

import hashlib
from collections.abc import Iterable
from datetime import datetime, timezone

from models.schemas.analysis_result import Entities, ReadabilityResult, SentimentResult
from models.schemas.skill_record import SkillRecord
from services.skill_taxonomy import categorize

BASE_SCORE = 70
POSITIVE_CONFIDENCE = 0.7
DEFAULT_POSITIVE_LABELS: frozenset[str] = frozenset({"joy", "positive"})
NEGATIVE_LABELS: frozenset[str] = frozenset({"anger", "sadness", "disgust", "fear", "negative"})

TARGET_STEP = 20


def calculate_score(
    sentiment: SentimentResult,
    entities: Entities,
    readability: ReadabilityResult,
    keyword_count: int,
    positive_labels: Iterable[str] = DEFAULT_POSITIVE_LABELS,
) -> int:
    """Combine analyzer outputs into a 0-100 score."""
    score = float(BASE_SCORE)

    positives = {label.lower() for label in positive_labels}
    if sentiment.label.lower() in positives and sentiment.score > POSITIVE_CONFIDENCE:
        score += 10

    if readability.flesch_score > 60:
        score += 5
    if readability.avg_sentence_length < 20:
        score += 5

    score += min(len(entities.skills) * 2, 20)
    score += min(len(entities.companies) * 1, 10)
    score += min(max(keyword_count, 0) * 0.5, 10)

    return int(round(min(max(score, 0), 100)))


def skill_level(skill_name: str) -> int:
    """Deterministic 0-100 level for a skill name.

    A stable hash of the lowercased name picks a base in [50, 80); the name
    length adds a bonus in [0, 20). Placeholder heuristic: only the range and
    stability of the result are meaningful.
    """
    digest = hashlib.sha256(skill_name.strip().lower().encode("utf-8")).digest()
    base = 50 + int.from_bytes(digest[:4], "big") % 30
    bonus = len(skill_name) % 20
    return min(base + bonus, 100)


def target_level(level: int) -> int:
    return min(level + TARGET_STEP, 100)


def assess_skills(skill_names: Iterable[str], now: datetime | None = None) -> list[SkillRecord]:
    assessed_at = now or datetime.now(timezone.utc)
    records = []
    for name in skill_names:
        level = skill_level(name)
        records.append(
            SkillRecord(
                name=name,
                level=level,
                target_level=target_level(level),
                category=categorize(name),
                last_practiced=assessed_at,
                progress=0,
            )
        )
    return records


def find_strengths(entities: Entities, keywords: list[str], phrases: list[str]) -> list[str]:
    strengths = []

    if len(entities.skills) > 5:
        strengths.append(f"Strong technical skills ({len(entities.skills)} skills identified)")
    if entities.companies:
        strengths.append(f"Professional experience at {len(entities.companies)} companies")
    if entities.education:
        strengths.append(f"Strong educational background ({len(entities.education)} institutions)")
    if entities.certifications:
        strengths.append(f"Industry certifications ({len(entities.certifications)} listed)")
    if len(keywords) > 10:
        strengths.append("Rich in relevant keywords")
    if len(phrases) > 5:
        strengths.append("Well-articulated professional experience")

    return strengths or ["Well-structured resume"]


def find_improvements(
    sentiment: SentimentResult, entities: Entities, readability: ReadabilityResult
) -> list[str]:
    improvements = []

    if sentiment.label.lower() in NEGATIVE_LABELS:
        improvements.append("Consider more positive and professional language")
    if len(entities.skills) < 3:
        improvements.append("Add more technical skills to stand out")
    if not entities.companies:
        improvements.append("Include company names for better credibility")
    if readability.avg_sentence_length > 25:
        improvements.append("Shorten long sentences for better readability")
    if readability.flesch_score < 60:
        improvements.append("Simplify language to make resume more accessible")

    return improvements or ["Minor formatting suggestions"]
