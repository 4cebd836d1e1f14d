"""Abstract base class for job handlers driven by the job queue."""

import logging
from abc import ABC, abstractmethod

from models.schemas.jobs import BaseJob, JobKind

logger = logging.getLogger(__name__)


class JobHandler(ABC):
    """Executes one kind of queued job.

    Subclasses must implement:
        - kind: the JobKind this handler is registered under
        - process(job): do the work; raise to fail the attempt

    ``validate`` runs at submission time and may raise StructuralError to
    reject a job before it is queued. The queue calls ``on_success`` once a
    job succeeds and ``on_failure`` after every failed attempt (``final`` is
    True when no retry follows).
    """

    kind: JobKind

    @abstractmethod
    async def process(self, job: BaseJob) -> None:
        """Run one attempt of ``job``."""

    def validate(self, job: BaseJob) -> None:
        return None

    async def on_success(self, job: BaseJob) -> None:
        return None

    async def on_failure(self, job: BaseJob, error: Exception, final: bool) -> None:
        return None
