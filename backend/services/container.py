"""Builds and owns the long-lived service graph for one process."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from config import Settings
from services.cache.store import CacheStore, create_store
from services.cache.user_cache import UserCache
from services.content.prioritizer import ContentPrioritizer
from services.content.sources import SOURCES, ArticleSource
from services.entity_analyzer import EntityAnalyzer
from services.inference.client import InferenceClient, LocalInferenceClient, RemoteInferenceClient
from services.pipeline.analysis import ResumeAnalyzer
from services.pipeline.job_queue import JobQueue
from services.pipeline.maintenance import ContentRefreshHandler, WeeklySummaryHandler
from services.pipeline.resume_processor import ResumeAnalysisHandler, sweep_orphaned_uploads
from services.pipeline.scheduler import MaintenanceScheduler, default_schedule
from services.repository import AnalysisRepository, InMemoryAnalysisRepository
from services.sentiment_analyzer import SentimentAnalyzer

logger = logging.getLogger(__name__)


def create_inference_client(settings: Settings) -> InferenceClient:
    if settings.inference_backend == "remote":
        return RemoteInferenceClient(
            base_url=settings.inference_base_url,
            ner_model=settings.ner_model,
            sentiment_model=settings.sentiment_model,
            api_key=settings.huggingface_api_key,
            ner_timeout=settings.ner_timeout_seconds,
            sentiment_timeout=settings.sentiment_timeout_seconds,
        )
    if settings.inference_backend == "local":
        return LocalInferenceClient(
            ner_model=settings.ner_model,
            sentiment_model=settings.sentiment_model,
            ner_timeout=settings.ner_timeout_seconds,
            sentiment_timeout=settings.sentiment_timeout_seconds,
        )
    raise ValueError(f"Unsupported inference backend: {settings.inference_backend}")


@dataclass
class Services:
    settings: Settings
    cache: UserCache
    inference: InferenceClient
    repository: AnalysisRepository
    prioritizer: ContentPrioritizer
    queue: JobQueue
    scheduler: MaintenanceScheduler | None = None
    started: bool = field(default=False, init=False)

    @property
    def upload_dir(self) -> Path:
        return Path(self.settings.upload_dir)

    async def start(self) -> None:
        if self.started:
            return
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        sweep_orphaned_uploads(self.upload_dir, self.settings.job_retention_seconds)
        await self.queue.start()
        if self.scheduler is not None:
            self.scheduler.start()
        self.started = True
        logger.info(
            "Services started (cache=%s, inference=%s)",
            self.cache.backend, self.settings.inference_backend,
        )

    async def close(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        await self.queue.stop()
        await self.prioritizer.aclose()
        await self.inference.aclose()
        await self.cache.close()
        self.started = False
        logger.info("Services stopped")


def build_services(
    settings: Settings,
    *,
    inference: InferenceClient | None = None,
    store: CacheStore | None = None,
    repository: AnalysisRepository | None = None,
    sources: tuple[ArticleSource, ...] = SOURCES,
    http_client: httpx.AsyncClient | None = None,
) -> Services:
    """Wire the service graph; injected collaborators replace the defaults."""
    cache = UserCache(
        store or create_store(settings.cache_backend, settings.redis_url),
        job_result_ttl=settings.job_retention_seconds,
    )
    inference = inference or create_inference_client(settings)
    repository = repository or InMemoryAnalysisRepository()

    analyzer = ResumeAnalyzer(
        EntityAnalyzer(inference, cache),
        SentimentAnalyzer(inference),
        positive_labels=settings.positive_sentiment_labels,
    )
    prioritizer = ContentPrioritizer(
        cache, sources=sources, http_client=http_client, timeout=settings.content_timeout_seconds
    )

    queue = JobQueue(
        [
            ResumeAnalysisHandler(analyzer, cache, repository),
            ContentRefreshHandler(cache, prioritizer),
            WeeklySummaryHandler(cache, repository),
        ],
        concurrency=settings.max_concurrent_jobs,
        backoff_base_seconds=settings.job_backoff_base_seconds,
        retention_seconds=settings.job_retention_seconds,
    )
    scheduler = (
        MaintenanceScheduler(queue, default_schedule(settings.maintenance_max_attempts))
        if settings.scheduler_enabled
        else None
    )
    return Services(
        settings=settings,
        cache=cache,
        inference=inference,
        repository=repository,
        prioritizer=prioritizer,
        queue=queue,
        scheduler=scheduler,
    )
