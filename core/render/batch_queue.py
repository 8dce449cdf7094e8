"""Ordered batch job queue with a single active-index pointer."""

import copy
import logging
import threading
from datetime import datetime
from typing import List, Optional, Tuple

from .types import Artifact, BatchJob, JobStatus, Settings, StyleReference

logger = logging.getLogger(__name__)


class BatchQueue:
    """In-memory job queue processed one job at a time.

    The queue itself never calls the generation gateway; the controller
    drives it through ``start``, ``mark_*`` and ``advance``.
    """

    def __init__(self):
        """Initialize an empty, idle queue."""
        self._jobs: List[BatchJob] = []
        self._active_index = -1
        self._running = False
        # Set when the in-flight job is removed, so the next advance stays put
        self._active_removed = False
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    @property
    def jobs(self) -> Tuple[BatchJob, ...]:
        with self._lock:
            return tuple(self._jobs)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def active_job(self) -> Optional[BatchJob]:
        """Job under the active index, if a run is in progress."""
        with self._lock:
            if self._running and 0 <= self._active_index < len(self._jobs):
                return self._jobs[self._active_index]
            return None

    @property
    def progress(self) -> float:
        """Share of the current run already processed, as a percentage."""
        with self._lock:
            if not self._jobs or self._active_index < 0:
                return 0.0
            return (self._active_index / len(self._jobs)) * 100.0

    def enqueue(
        self,
        settings: Settings,
        style_references: List[StyleReference],
    ) -> BatchJob:
        """
        Append a new queued job.

        Args:
            settings: Render settings, snapshotted
            style_references: Style references, snapshotted

        Returns:
            Newly created BatchJob
        """
        job = BatchJob(
            settings=copy.deepcopy(settings),
            style_references=copy.deepcopy(list(style_references)),
        )

        with self._lock:
            self._jobs.append(job)

        logger.info(
            f"Queued batch job {job.id} with {len(job.style_references)} style references"
        )
        return job

    def get(self, job_id: str) -> Optional[BatchJob]:
        """Get a job by ID."""
        with self._lock:
            return self._find(job_id)

    def remove(self, job_id: str) -> bool:
        """
        Remove a job by ID.

        An in-flight job can be removed; its generation call keeps running
        but the settlement is discarded because the record is gone.

        Returns:
            True if removed, False if not found
        """
        with self._lock:
            index = self._index_of(job_id)
            if index < 0:
                return False

            del self._jobs[index]

            if self._running:
                if index < self._active_index:
                    self._active_index -= 1
                elif index == self._active_index:
                    self._active_removed = True

        logger.info(f"Removed batch job {job_id}")
        return True

    def clear(self) -> int:
        """
        Remove all jobs.

        Returns:
            Number of jobs removed

        Raises:
            RuntimeError: If a batch run is active
        """
        with self._lock:
            if self._running:
                raise RuntimeError("Cannot clear the batch queue while a batch run is active")
            count = len(self._jobs)
            self._jobs.clear()

        logger.info(f"Cleared {count} batch jobs")
        return count

    def start(self) -> bool:
        """
        Begin a run at the first job.

        Returns:
            True if a run was started, False if empty or already running
        """
        with self._lock:
            if self._running or not self._jobs:
                return False
            self._running = True
            self._active_index = 0
            self._active_removed = False

        logger.info(f"Started batch run over {len(self._jobs)} jobs")
        return True

    def mark_rendering(self, job_id: str) -> bool:
        """Move a queued job to rendering."""
        with self._lock:
            job = self._find(job_id)
            if job is None:
                return False

            if job.status != JobStatus.QUEUED:
                logger.warning(f"Job {job_id} is not queued, current status: {job.status.value}")
                return False

            job.status = JobStatus.RENDERING
            return True

    def mark_completed(self, job_id: str, result: Artifact) -> bool:
        """
        Attach a result to a rendering job.

        Returns:
            True if updated, False if the job is gone or not rendering
        """
        with self._lock:
            job = self._find(job_id)
            if job is None:
                logger.info(f"Discarding result for removed batch job {job_id}")
                return False

            if job.status != JobStatus.RENDERING:
                logger.warning(f"Job {job_id} is not rendering, current status: {job.status.value}")
                return False

            job.status = JobStatus.COMPLETED
            job.result = result
            job.completed_at = datetime.now()
            return True

    def mark_failed(self, job_id: str, error_message: str) -> bool:
        """
        Mark a rendering job as failed.

        Returns:
            True if updated, False if the job is gone or not rendering
        """
        with self._lock:
            job = self._find(job_id)
            if job is None:
                logger.info(f"Discarding failure for removed batch job {job_id}")
                return False

            if job.status != JobStatus.RENDERING:
                logger.warning(f"Job {job_id} is not rendering, current status: {job.status.value}")
                return False

            job.status = JobStatus.FAILED
            job.error = error_message
            job.completed_at = datetime.now()
            logger.warning(f"Batch job {job_id} failed: {error_message}")
            return True

    def advance(self) -> bool:
        """
        Move past the settled job.

        Returns:
            True if another job is pending, False once the run has ended
        """
        with self._lock:
            if not self._running:
                return False

            if self._active_removed:
                self._active_removed = False
            else:
                self._active_index += 1

            if self._active_index >= len(self._jobs):
                self._finish()
                return False
            return True

    def abort(self, reason: str) -> int:
        """
        Stop the run and fail every job that has not finished.

        Returns:
            Number of jobs marked failed
        """
        failed = 0
        with self._lock:
            for job in self._jobs:
                if job.status in (JobStatus.QUEUED, JobStatus.RENDERING):
                    job.status = JobStatus.FAILED
                    job.error = reason
                    job.completed_at = datetime.now()
                    failed += 1
            self._finish()

        logger.error(f"Batch run aborted, {failed} jobs failed: {reason}")
        return failed

    def to_dict(self, include_results: bool = True) -> dict:
        """Convert to dictionary for serialization."""
        jobs = self.jobs
        return {
            "jobs": [j.to_dict(include_result=include_results) for j in jobs],
            "total": len(jobs),
            "active_index": self._active_index,
            "is_running": self._running,
            "progress": round(self.progress, 1),
        }

    def _finish(self) -> None:
        self._running = False
        self._active_index = -1
        self._active_removed = False

    def _find(self, job_id: str) -> Optional[BatchJob]:
        index = self._index_of(job_id)
        return self._jobs[index] if index >= 0 else None

    def _index_of(self, job_id: str) -> int:
        for index, job in enumerate(self._jobs):
            if job.id == job_id:
                return index
        return -1
