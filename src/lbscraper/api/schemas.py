from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lbscraper.jobs.models import FilmRecord, Job, JobStatus, ProfileSummary

# =============================================================================
# Request / Response models
# =============================================================================


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScrapeRequest(BaseModel):
    """Body of a scrape submission; blank usernames are rejected by the handler."""

    username: str | None = Field(default=None, description="Letterboxd username")


class ScrapeStartedResponse(_ApiModel):
    job_id: str
    status: JobStatus = JobStatus.PENDING
    message: str = "Scraping started"


class JobStatusResponse(_ApiModel):
    status: JobStatus
    progress: float
    total_pages: int
    film_count: int
    data: list[FilmRecord] = Field(
        default_factory=list,
        description="Scraped films, filled once the job has finished",
    )
    profile_data: ProfileSummary | None = None
    error: str | None = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusResponse":
        return cls(
            status=job.status,
            progress=job.progress,
            total_pages=job.total_pages,
            film_count=len(job.data),
            data=job.data if job.is_terminal else [],
            profile_data=job.profile_data,
            error=job.error,
        )


class ErrorResponse(BaseModel):
    message: str


class InternalErrorResponse(BaseModel):
    message: str
    error: str
    status: Literal["error"] = "error"
