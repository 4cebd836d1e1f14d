"""Pydantic contracts passed between the pipeline stages and the cache."""

from models.schemas.analysis_result import (
    AnalysisResult,
    Entities,
    ReadabilityResult,
    SentimentResult,
)
from models.schemas.article import Article, RankedArticle
from models.schemas.jobs import AnalysisJob, BaseJob, JobKind, JobStatus, MaintenanceJob
from models.schemas.skill_record import SkillRecord

__all__ = [
    "AnalysisJob",
    "AnalysisResult",
    "Article",
    "BaseJob",
    "Entities",
    "JobKind",
    "JobStatus",
    "MaintenanceJob",
    "RankedArticle",
    "ReadabilityResult",
    "SentimentResult",
    "SkillRecord",
]
