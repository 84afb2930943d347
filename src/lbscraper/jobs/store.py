"""In-memory job store.

No database: all state lives in a dict owned by the store instance, so a
process restart loses every job. Finished jobs are removed by a timer
scheduled on the event loop.
"""

import asyncio
import uuid
from collections.abc import Callable

import structlog

from lbscraper.exceptions import JobNotFoundError
from lbscraper.jobs.models import Job

logger = structlog.get_logger(logger_name=__name__)


def _new_job_id() -> str:
    return f"job_{uuid.uuid4().hex}"


class JobStore:
    """Concurrency-safe registry of jobs with scheduled eviction.

    Readers get deep copies, so a snapshot never changes under a caller
    while the owning orchestrator keeps writing.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_job_id) -> None:
        self._jobs: dict[str, Job] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}
        self._lock = asyncio.Lock()
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    async def create(self) -> str:
        """Register a new pending job and return its id."""
        async with self._lock:
            job_id = self._id_factory()
            while job_id in self._jobs:
                job_id = self._id_factory()
            self._jobs[job_id] = Job(id=job_id)
        logger.debug("Job created", job_id=job_id)
        return job_id

    async def get(self, job_id: str) -> Job:
        """Return a snapshot of a job."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return job.model_copy(deep=True)

    async def update(self, job_id: str, mutator: Callable[[Job], None]) -> Job:
        """Apply ``mutator`` to a job atomically and return a snapshot."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            mutator(job)
            return job.model_copy(deep=True)

    async def delete(self, job_id: str) -> None:
        async with self._lock:
            self._remove(job_id)

    def schedule_eviction(self, job_id: str, delay: float) -> None:
        """Remove ``job_id`` after ``delay`` seconds."""
        loop = asyncio.get_running_loop()
        previous = self._evictions.pop(job_id, None)
        if previous is not None:
            previous.cancel()
        self._evictions[job_id] = loop.call_later(delay, self._evict, job_id)
        logger.debug("Eviction scheduled", job_id=job_id, delay=delay)

    def cancel_evictions(self) -> None:
        """Cancel all pending eviction timers."""
        for handle in self._evictions.values():
            handle.cancel()
        self._evictions.clear()

    def _evict(self, job_id: str) -> None:
        # Timer callbacks run on the loop thread between awaits, so they
        # cannot interleave with a locked section.
        if self._remove(job_id):
            logger.info("Job evicted", job_id=job_id)

    def _remove(self, job_id: str) -> bool:
        handle = self._evictions.pop(job_id, None)
        if handle is not None:
            handle.cancel()
        return self._jobs.pop(job_id, None) is not None
