from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lbscraper.exceptions import JobStateError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Scraped Records
# =============================================================================


class FilmRecord(_CamelModel):
    """One rated film from the listing."""

    name: str = Field(..., description="Film title without the year suffix")
    year: str | None = Field(default=None, description="Release year, if shown")
    uri: str = Field(..., description="Absolute URL of the film page")
    rating: float = Field(default=0.0, ge=0, le=5, description="Star rating")


class ProfileStats(_CamelModel):
    """Counters shown on a profile page."""

    total_films: int = Field(default=0, ge=0)
    films_this_year: int = Field(default=0, ge=0)
    following: int = Field(default=0, ge=0)
    followers: int = Field(default=0, ge=0)


class ProfileSummary(_CamelModel):
    """Public profile summary of a user."""

    display_name: str
    username: str
    avatar_url: str | None = None
    location: str | None = None
    bio: str | None = None
    stats: ProfileStats = Field(default_factory=ProfileStats)

    @classmethod
    def degraded(cls, identifier: str) -> "ProfileSummary":
        """Summary used when the profile page could not be read."""
        return cls(display_name=identifier, username=identifier)


# =============================================================================
# Job
# =============================================================================


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class Job(_CamelModel):
    """State of one scrape request.

    Mutations go through the methods below, which enforce the lifecycle
    ``pending -> in-progress -> completed | failed``: progress and the film
    list only grow, and a finished job no longer changes.
    """

    id: str
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    total_pages: int = 1
    data: list[FilmRecord] = Field(default_factory=list)
    profile_data: ProfileSummary | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _require(self, *allowed: JobStatus) -> None:
        if self.status not in allowed:
            raise JobStateError(
                f"Job {self.id} is {self.status.value}, "
                f"expected {' or '.join(s.value for s in allowed)}"
            )

    def start(self) -> None:
        self._require(JobStatus.PENDING)
        self.status = JobStatus.IN_PROGRESS

    def set_profile(self, profile: ProfileSummary) -> None:
        self._require(JobStatus.IN_PROGRESS)
        self.profile_data = profile

    def set_total_pages(self, total_pages: int) -> None:
        self._require(JobStatus.IN_PROGRESS)
        self.total_pages = max(1, total_pages)

    def add_films(self, films: list[FilmRecord]) -> None:
        self._require(JobStatus.IN_PROGRESS)
        self.data.extend(films)

    def advance(self, progress: float) -> None:
        self._require(JobStatus.IN_PROGRESS)
        self.progress = max(self.progress, min(1.0, max(0.0, progress)))

    def complete(self) -> None:
        self._require(JobStatus.IN_PROGRESS)
        self.status = JobStatus.COMPLETED
        self.progress = 1.0
        self.finished_at = _utcnow()

    def fail(self, message: str) -> None:
        self._require(JobStatus.PENDING, JobStatus.IN_PROGRESS)
        self.status = JobStatus.FAILED
        self.error = message or "Unknown error"
        self.finished_at = _utcnow()
