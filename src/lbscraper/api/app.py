"""lbscraper FastAPI backend.

Endpoints (under the configured prefix, default ``/api/v1``):
  POST /letterboxd          submit a username, get back a jobId immediately
  GET  /letterboxd?jobId=   poll status: pending | in-progress | completed | failed
  GET  /letterboxd/export   download the films of a finished job as CSV
  GET  /health              liveness probe
"""

from contextlib import asynccontextmanager
from functools import partial

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from lbscraper import __version__
from lbscraper.api.schemas import (
    ErrorResponse,
    InternalErrorResponse,
    JobStatusResponse,
    ScrapeRequest,
    ScrapeStartedResponse,
)
from lbscraper.config import Config, cfg
from lbscraper.exceptions import InvalidUsernameError, JobNotFoundError
from lbscraper.jobs.orchestrator import ScrapeOrchestrator
from lbscraper.jobs.store import JobStore
from lbscraper.scraper.playwright_scraper import (
    BrowserManager,
    ScraperConfig,
    cleanup,
)
from lbscraper.utils.export import films_to_csv
from lbscraper.utils.log import configure_logging

logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_orchestrator(request: Request) -> ScrapeOrchestrator:
    return request.app.state.orchestrator


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

router = APIRouter()
letterboxd = APIRouter(prefix="/letterboxd", tags=["letterboxd"])


@router.get("/")
async def api_root():
    return {"message": "API is running"}


@letterboxd.post("", response_model=ScrapeStartedResponse)
@letterboxd.post("/", response_model=ScrapeStartedResponse, include_in_schema=False)
async def start_scraping(
    payload: ScrapeRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Start a scrape in the background and return its job id immediately."""
    try:
        job_id = await orchestrator.submit(payload.username)
    except InvalidUsernameError:
        raise
    except Exception as exc:
        logger.exception("Failed to initiate scraping", error=str(exc))
        return JSONResponse(
            status_code=500,
            content=InternalErrorResponse(
                message="Failed to initiate scraping", error=str(exc)
            ).model_dump(),
        )
    return ScrapeStartedResponse(job_id=job_id)


@letterboxd.get("", response_model=JobStatusResponse)
@letterboxd.get("/", response_model=JobStatusResponse, include_in_schema=False)
async def get_scraping_status(
    job_id: str | None = Query(default=None, alias="jobId"),
    store: JobStore = Depends(get_store),
):
    """Poll a job. Films are only included once the job has finished."""
    if not job_id:
        raise JobNotFoundError("")
    job = await store.get(job_id)
    return JobStatusResponse.from_job(job)


@letterboxd.get("/export")
async def export_films(
    job_id: str | None = Query(default=None, alias="jobId"),
    store: JobStore = Depends(get_store),
):
    """Download a finished job's films in the Letterboxd import CSV format."""
    if not job_id:
        raise JobNotFoundError("")
    job = await store.get(job_id)
    if not job.is_terminal:
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(message="Job has not finished yet").model_dump(),
        )

    name = job.profile_data.username if job.profile_data else job.id
    return Response(
        content=films_to_csv(job.data),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{name}-films.csv"'},
    )


router.include_router(letterboxd)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def invalid_username_handler(request: Request, exc: InvalidUsernameError):
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message=str(exc) or "Username is required.").model_dump(),
    )


async def job_not_found_handler(request: Request, exc: JobNotFoundError):
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message="Invalid job ID").model_dump(),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "invalid value") if errors else "invalid value"
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message=f"Invalid request: {detail}").model_dump(),
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    config: Config | None = None,
    store: JobStore | None = None,
    orchestrator: ScrapeOrchestrator | None = None,
) -> FastAPI:
    """Build the FastAPI app around one store and orchestrator."""
    config = config or cfg
    configure_logging(config.log_level)

    store = store or (orchestrator.store if orchestrator else JobStore())
    if orchestrator is None:
        browser_config = ScraperConfig(
            headless=config.headless, timeout=config.navigation_timeout_ms
        )
        orchestrator = ScrapeOrchestrator(
            store,
            config,
            session_factory=partial(BrowserManager.session, browser_config),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Service starting",
            prefix=config.api_prefix,
            selectors=orchestrator.selectors.name,
            max_concurrent_jobs=config.max_concurrent_jobs,
        )

        yield  # application runs

        await orchestrator.shutdown()
        store.cancel_evictions()
        await cleanup()

    app = FastAPI(title="lbscraper API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.orchestrator = orchestrator

    app.add_exception_handler(InvalidUsernameError, invalid_username_handler)
    app.add_exception_handler(JobNotFoundError, job_not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(router, prefix=config.api_prefix)
    return app
