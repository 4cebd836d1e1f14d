import asyncio
import mimetypes
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_services
from models.requests import SkillProgressUpdate
from models.responses import DashboardResponse, HealthResponse, JobResultResponse, SubmitResponse
from models.schemas.article import RankedArticle
from models.schemas.jobs import AnalysisJob
from models.schemas.skill_record import SkillRecord
from services import text_extractor
from services.container import Services
from services.errors import UnsupportedFormat

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


def _document_type(upload: UploadFile) -> str:
    content_type = upload.content_type or ""
    if not content_type or content_type == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(upload.filename or "")
        content_type = guessed or content_type
    return content_type


@router.get("/health", response_model=HealthResponse)
async def health(services: Services = Depends(get_services)):
    return HealthResponse(
        status="ok",
        cache_backend=services.cache.backend,
        inference_backend=services.settings.inference_backend,
        queue_depth=services.queue.depth,
    )


@router.post("/resumes", response_model=SubmitResponse)
@limiter.limit("10/minute")
async def submit_resume(
    request: Request,
    resume: UploadFile = File(...),
    user_id: str = Form(..., min_length=1, max_length=128),
    services: Services = Depends(get_services),
):
    settings = services.settings

    # Validate file type before anything is written or queued
    try:
        document_type = text_extractor.ensure_supported(_document_type(resume))
    except UnsupportedFormat as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Read and validate size
    content = await resume.read()
    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {settings.max_upload_size_mb}MB",
        )
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    suffix = Path(resume.filename or "").suffix.lower()
    path = services.upload_dir / f"{uuid.uuid4().hex}{suffix}"
    services.upload_dir.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(path.write_bytes, content)

    job = AnalysisJob(
        user_id=user_id,
        document_path=str(path),
        document_type=document_type,
        original_filename=resume.filename or "",
        max_attempts=settings.job_max_attempts,
    )
    job_id = await services.queue.submit(job)
    return SubmitResponse(job_id=job_id, filename=resume.filename or "")


@router.get("/resume-analysis/{user_id}/{job_id}", response_model=JobResultResponse)
async def get_resume_analysis(user_id: str, job_id: str, services: Services = Depends(get_services)):
    result = await services.cache.get_job_result(user_id, job_id)
    if result is not None:
        return JobResultResponse.model_validate(result)

    job = services.queue.get(job_id)
    if job is not None and getattr(job, "user_id", None) == user_id and not job.is_terminal:
        return JobResultResponse(status=job.status.value, timestamp=job.submitted_at.isoformat())

    raise HTTPException(status_code=404, detail="Analysis not found")


@router.get("/dashboard/{user_id}", response_model=DashboardResponse)
async def get_dashboard(user_id: str, services: Services = Depends(get_services)):
    return await services.cache.get_user_data(user_id)


@router.post("/skills/{user_id}/progress", response_model=list[SkillRecord])
@limiter.limit("30/minute")
async def update_skill_progress(
    request: Request,
    user_id: str,
    body: SkillProgressUpdate,
    services: Services = Depends(get_services),
):
    skills = await services.cache.update_skill_progress(user_id, body.skill_name, body.delta)
    wanted = body.skill_name.casefold()
    if not any(s.name.casefold() == wanted for s in skills):
        raise HTTPException(status_code=404, detail=f"Skill '{body.skill_name}' not found")
    return skills


@router.get("/recommendations/{user_id}", response_model=list[RankedArticle])
async def get_recommendations(user_id: str, services: Services = Depends(get_services)):
    return await services.prioritizer.recommend(user_id)
