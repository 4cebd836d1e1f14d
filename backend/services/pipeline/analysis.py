"""Analysis fan-out: entity, sentiment and local text stages in parallel.

Flow:
    text
      ├─ EntityAnalyzer.extract_entities      (inference + NER cache, never raises)
      ├─ SentimentAnalyzer.analyze_sentiment  (inference, never raises)
      └─ local stage (thread)                 readability + keywords + phrases
                       ↓  join all three
      score / strengths / improvements / skill assessment
                       ↓
      AnalysisResult + [SkillRecord]

The local stage has no fallback: if it raises, the whole analysis fails and
the job-level retry policy applies.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from models.schemas.analysis_result import AnalysisResult, ReadabilityResult
from models.schemas.skill_record import SkillRecord
from services import keyword_extractor, readability, scoring
from services.entity_analyzer import EntityAnalyzer
from services.sentiment_analyzer import SentimentAnalyzer

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 20
MAX_PHRASES = 10


@dataclass(frozen=True)
class TextStats:
    readability: ReadabilityResult
    keywords: list[str]
    phrases: list[str]


def compute_text_stats(text: str) -> TextStats:
    return TextStats(
        readability=readability.compute_readability(text),
        keywords=keyword_extractor.extract_keywords(text),
        phrases=keyword_extractor.extract_important_phrases(text),
    )


class ResumeAnalyzer:
    def __init__(
        self,
        entity_analyzer: EntityAnalyzer,
        sentiment_analyzer: SentimentAnalyzer,
        positive_labels: Iterable[str] = scoring.DEFAULT_POSITIVE_LABELS,
    ) -> None:
        self._entities = entity_analyzer
        self._sentiment = sentiment_analyzer
        self._positive_labels = frozenset(positive_labels)

    async def analyze(self, text: str) -> tuple[AnalysisResult, list[SkillRecord]]:
        entities, sentiment, stats = await asyncio.gather(
            self._entities.extract_entities(text),
            self._sentiment.analyze_sentiment(text),
            asyncio.to_thread(compute_text_stats, text),
        )

        score = scoring.calculate_score(
            sentiment,
            entities,
            stats.readability,
            len(stats.keywords),
            positive_labels=self._positive_labels,
        )
        result = AnalysisResult(
            score=score,
            strengths=scoring.find_strengths(entities, stats.keywords, stats.phrases),
            improvements=scoring.find_improvements(sentiment, entities, stats.readability),
            keywords=stats.keywords[:MAX_KEYWORDS],
            important_phrases=stats.phrases[:MAX_PHRASES],
            sentiment=sentiment,
            readability=stats.readability,
            entities=entities,
        )
        skills = scoring.assess_skills(entities.skills, now=result.last_updated)
        logger.info(
            "Analysis complete: score=%d skills=%d keywords=%d",
            score, len(entities.skills), len(stats.keywords),
        )
        return result, skills
