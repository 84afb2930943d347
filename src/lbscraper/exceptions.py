"""Error taxonomy for the scraping service."""


class ScraperError(Exception):
    """Base error for lbscraper."""


class InvalidUsernameError(ScraperError, ValueError):
    """The submitted username is missing or blank."""


class JobNotFoundError(ScraperError, KeyError):
    """The job id is unknown or the job has already been evicted."""

    def __init__(self, job_id: str) -> None:
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self) -> str:
        return f"Job not found: {self.job_id}"


class JobStateError(ScraperError):
    """An illegal job state transition was attempted."""


class NavigationError(ScraperError):
    """The browser could not load a page."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to load {url}: {reason}")
        self.url = url
        self.reason = reason


class FatalCrawlError(ScraperError):
    """A crawl failure that ends the job."""


class UnknownSelectorSetError(ScraperError, KeyError):
    """No selector set is registered under the requested name."""

    def __str__(self) -> str:
        return f"Unknown selector set: {self.args[0]!r}"
