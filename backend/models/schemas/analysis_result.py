"""Analyzer outputs and the combined, immutable analysis result."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class SentimentResult(BaseModel):
    label: str = "neutral"
    score: float = 1.0
    all_results: list[dict] = []


class ReadabilityResult(BaseModel):
    sentence_count: int = 0
    word_count: int = 0
    avg_sentence_length: float = 0.0
    avg_word_length: float = 0.0
    flesch_score: float = 0.0
    flesch_grade_level: float = 0.0
    difficult_words: int = 0


class Entities(BaseModel):
    """Five entity buckets, each deduplicated case-insensitively."""
    skills: list[str] = []
    companies: list[str] = []
    titles: list[str] = []
    education: list[str] = []
    certifications: list[str] = []


class AnalysisResult(BaseModel):
    """Dashboard payload produced for one completed analysis job."""
    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, le=100)
    strengths: list[str] = []
    improvements: list[str] = []
    keywords: list[str] = []
    important_phrases: list[str] = []
    sentiment: SentimentResult = SentimentResult()
    readability: ReadabilityResult = ReadabilityResult()
    entities: Entities = Entities()
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
