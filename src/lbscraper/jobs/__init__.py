"""Job tracking: models and the in-memory store.

The background pipeline lives in ``lbscraper.jobs.orchestrator``.
"""

from .models import FilmRecord, Job, JobStatus, ProfileStats, ProfileSummary
from .store import JobStore

__all__ = [
    "FilmRecord",
    "Job",
    "JobStatus",
    "JobStore",
    "ProfileStats",
    "ProfileSummary",
]
