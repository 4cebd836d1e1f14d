from typing import Any

from pydantic import BaseModel

from models.schemas.analysis_result import AnalysisResult
from models.schemas.article import RankedArticle
from models.schemas.skill_record import SkillRecord


class SubmitResponse(BaseModel):
    job_id: str
    message: str = "Resume uploaded and queued for analysis"
    filename: str = ""


class JobResultResponse(BaseModel):
    status: str
    result: AnalysisResult | None = None
    error: str | None = None
    attempts: int | None = None
    final: bool | None = None
    timestamp: str = ""


class DashboardResponse(BaseModel):
    dashboard: dict[str, Any] | None = None
    skills: list[SkillRecord] | None = None
    articles: list[RankedArticle] | None = None
    recommendations: list[RankedArticle] | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    cache_backend: str = ""
    inference_backend: str = ""
    queue_depth: int = 0
