"""Background analysis jobs: status, progress and cancellation."""

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Job status states."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (JobStatus.QUEUED, JobStatus.RUNNING)


@dataclass
class JobProgress:
    """Latest pipeline checkpoint reported by a running analysis."""

    fraction: float = 0.0
    message: str = ""
    stages: List[str] = field(default_factory=list)  # every distinct message, in order

    def advance(self, fraction: Optional[float], message: Optional[str]) -> None:
        if fraction is not None:
            # Checkpoints can arrive out of order from the worker thread
            self.fraction = max(self.fraction, min(1.0, fraction))
        if message:
            self.message = message
            if not self.stages or self.stages[-1] != message:
                self.stages.append(message)


@dataclass
class AnalysisJob:
    """One background analysis of a project."""

    job_id: str
    project_path: str
    status: JobStatus
    created_at: float
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    progress: JobProgress = field(default_factory=JobProgress)
    error: Optional[str] = None
    summary: Optional[dict] = None
    task: Optional[asyncio.Task] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def finish(self, status: JobStatus) -> None:
        self.status = status
        self.completed_at = time.time()

    def to_status_dict(self) -> dict:
        """JSON-friendly view of the job for status queries."""
        status = {
            "job_id": self.job_id,
            "project_path": self.project_path,
            "status": self.status.value,
            "created_at": self.created_at,
            "progress": {
                "fraction": round(self.progress.fraction, 3),
                "progress_pct": round(self.progress.fraction * 100, 2),
                "message": self.progress.message,
                "stages": list(self.progress.stages),
            },
        }

        if self.started_at:
            status["started_at"] = self.started_at
            end = self.completed_at if self.completed_at else time.time()
            key = "total_seconds" if self.completed_at else "elapsed_seconds"
            status[key] = round(end - self.started_at, 2)
        if self.completed_at:
            status["completed_at"] = self.completed_at
        if self.summary:
            status["summary"] = self.summary
        if self.error:
            status["error"] = self.error
        return status


class JobManager:
    """Tracks analysis jobs; every state change happens under one asyncio lock."""

    def __init__(self):
        self.jobs: Dict[str, AnalysisJob] = {}
        self._lock = asyncio.Lock()

    def create_job(self, project_path: str) -> AnalysisJob:
        """Register a queued job for a project.

        Args:
            project_path: Project the job will analyze

        Returns:
            The new job
        """
        job = AnalysisJob(
            job_id=uuid.uuid4().hex[:8],
            project_path=project_path,
            status=JobStatus.QUEUED,
            created_at=time.time(),
        )
        self.jobs[job.job_id] = job
        logger.info(f"Created analysis job {job.job_id} for {project_path}")
        return job

    def get_job(self, job_id: str) -> Optional[AnalysisJob]:
        return self.jobs.get(job_id)

    def list_jobs(self) -> List[AnalysisJob]:
        return list(self.jobs.values())

    def _active_job(self, job_id: str) -> Optional[AnalysisJob]:
        job = self.jobs.get(job_id)
        if job is None or not job.is_active:
            return None
        return job

    async def update_progress(
        self,
        job_id: str,
        fraction: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None:
        """Record a progress checkpoint; finished jobs ignore late updates."""
        async with self._lock:
            job = self._active_job(job_id)
            if job is not None:
                job.progress.advance(fraction, message)

    async def mark_started(self, job_id: str) -> None:
        async with self._lock:
            job = self.jobs.get(job_id)
            if job is not None and job.status == JobStatus.QUEUED:
                job.status = JobStatus.RUNNING
                job.started_at = time.time()
                logger.info(f"Job {job_id} started")

    async def mark_completed(self, job_id: str, summary: Optional[dict] = None) -> None:
        async with self._lock:
            job = self._active_job(job_id)
            if job is None:
                return
            job.progress.advance(1.0, None)
            job.summary = summary
            job.finish(JobStatus.COMPLETED)
            logger.info(f"Job {job_id} completed")

    async def mark_failed(self, job_id: str, error: str) -> None:
        async with self._lock:
            job = self._active_job(job_id)
            if job is None:
                return
            job.error = error
            job.finish(JobStatus.FAILED)
            logger.error(f"Job {job_id} failed: {error}")

    async def cancel_job(self, job_id: str) -> bool:
        """Cancel a queued or running job.

        The worker thread stops at its next cancellation check; the asyncio
        task wrapping it is cancelled right away.

        Args:
            job_id: Job identifier

        Returns:
            True if the job was active and is now cancelled
        """
        async with self._lock:
            job = self._active_job(job_id)
            if job is None:
                return False

            job.cancel_event.set()
            if job.task is not None and not job.task.done():
                job.task.cancel()
            job.finish(JobStatus.CANCELLED)
            logger.info(f"Job {job_id} cancelled")
            return True

    def get_status_dict(self, job: AnalysisJob) -> dict:
        return job.to_status_dict()
