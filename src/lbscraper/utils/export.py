import csv
import io
import json
from pathlib import Path

import structlog

from lbscraper.jobs.models import FilmRecord, Job

logger = structlog.get_logger(logger_name=__name__)

# Column names expected by the Letterboxd CSV importer
CSV_COLUMNS = ("Name", "Year", "Letterboxd URI", "Rating")


def _format_rating(rating: float) -> str:
    if rating <= 0:
        return ""
    return f"{rating:g}"


def films_to_csv(films: list[FilmRecord]) -> str:
    """Render films in the Letterboxd import CSV format.

    Unrated films (rating 0) get an empty rating cell.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for film in films:
        writer.writerow(
            [film.name, film.year or "", film.uri, _format_rating(film.rating)]
        )
    return buffer.getvalue()


def write_films_csv(films: list[FilmRecord], export_path: Path) -> Path:
    """Write films to ``export_path`` as Letterboxd import CSV."""
    export_path.parent.mkdir(parents=True, exist_ok=True)
    export_path.write_text(films_to_csv(films), encoding="utf-8")
    logger.info("Exported films", path=str(export_path), films=len(films))
    return export_path


def write_job_json(job: Job, export_path: Path) -> Path:
    """Export a job snapshot (profile and films) to a JSON file."""
    export_path.parent.mkdir(parents=True, exist_ok=True)
    with export_path.open("w", encoding="utf-8") as f:
        json.dump(
            job.model_dump(mode="json", by_alias=True),
            f,
            indent=2,
            ensure_ascii=False,
        )
    logger.info("Exported job", path=str(export_path), job_id=job.id)
    return export_path
