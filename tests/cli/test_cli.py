"""Tests for the lbscraper CLI.

Tests for:
- lbscraper scrape (output, exports, options, exit codes)
- lbscraper serve
- the foreground _scrape runner
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from lbscraper.cli.main import _scrape, app
from lbscraper.jobs.models import (
    FilmRecord,
    Job,
    JobStatus,
    ProfileStats,
    ProfileSummary,
)

runner = CliRunner()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def finished_job():
    """A completed job with a profile and two films."""
    return Job(
        id="job_abc",
        status=JobStatus.COMPLETED,
        progress=1.0,
        total_pages=2,
        data=[
            FilmRecord(
                name="Arrival",
                year="2016",
                uri="https://letterboxd.com/film/arrival-2016/",
                rating=4.5,
            ),
            FilmRecord(
                name="Stalker",
                year="1979",
                uri="https://letterboxd.com/film/stalker/",
                rating=0,
            ),
        ],
        profile_data=ProfileSummary(
            display_name="Alice Smith",
            username="alice",
            location="Berlin",
            stats=ProfileStats(total_films=1234, followers=2048),
        ),
    )


@pytest.fixture
def failed_job():
    return Job(id="job_def", status=JobStatus.FAILED, error="boom")


# =============================================================================
# Test: scrape
# =============================================================================


class TestScrapeCommand:
    """Tests for 'lbscraper scrape'."""

    def test_requires_username(self):
        result = runner.invoke(app, ["scrape"])
        assert result.exit_code != 0

    def test_prints_profile_and_films(self, finished_job):
        """Test the summary panel and film table."""
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=finished_job)):
            result = runner.invoke(app, ["scrape", "alice"])

        assert result.exit_code == 0
        assert "Alice Smith" in result.output
        assert "Arrival" in result.output
        assert "Stalker" in result.output
        assert "completed" in result.output

    def test_limit_truncates_table(self, finished_job):
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=finished_job)):
            result = runner.invoke(app, ["scrape", "alice", "--limit", "1"])

        assert result.exit_code == 0
        assert "Arrival" in result.output
        assert "Stalker" not in result.output

    def test_normalizes_username(self, finished_job):
        mock_scrape = AsyncMock(return_value=finished_job)
        with patch("lbscraper.cli.main._scrape", new=mock_scrape):
            runner.invoke(app, ["scrape", " alice/ "])

        assert mock_scrape.call_args.args[0] == "alice"

    def test_blank_username(self):
        """Test that a blank username exits with a usage error."""
        mock_scrape = AsyncMock()
        with patch("lbscraper.cli.main._scrape", new=mock_scrape):
            result = runner.invoke(app, ["scrape", "   "])

        assert result.exit_code == 2
        assert "Username is required" in result.output
        mock_scrape.assert_not_called()

    def test_username_with_path_characters(self):
        mock_scrape = AsyncMock()
        with patch("lbscraper.cli.main._scrape", new=mock_scrape):
            result = runner.invoke(app, ["scrape", "alice/films"])

        assert result.exit_code == 2
        mock_scrape.assert_not_called()

    def test_options_reach_config(self, finished_job):
        """Test that --scheme and --delay override the configuration."""
        mock_scrape = AsyncMock(return_value=finished_job)
        with patch("lbscraper.cli.main._scrape", new=mock_scrape):
            result = runner.invoke(
                app, ["scrape", "alice", "--scheme", "legacy", "--delay", "0.5"]
            )

        assert result.exit_code == 0
        config = mock_scrape.call_args.args[1]
        assert config.selector_scheme == "legacy"
        assert config.page_delay_seconds == 0.5

    def test_invalid_scheme(self):
        result = runner.invoke(app, ["scrape", "alice", "--scheme", "2009"])
        assert result.exit_code != 0

    def test_failed_job_exit_code(self, failed_job):
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=failed_job)):
            result = runner.invoke(app, ["scrape", "alice"])

        assert result.exit_code == 1
        assert "boom" in result.output

    def test_verbose_flag(self, finished_job):
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=finished_job)):
            result = runner.invoke(app, ["-v", "scrape", "alice"])

        assert result.exit_code == 0


class TestScrapeExports:
    """Tests for --csv and --json."""

    def test_csv_export(self, finished_job, tmp_path):
        """Test the Letterboxd import CSV."""
        csv_path = tmp_path / "out" / "films.csv"
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=finished_job)):
            result = runner.invoke(app, ["scrape", "alice", "--csv", str(csv_path)])

        assert result.exit_code == 0
        lines = csv_path.read_text(encoding="utf-8").splitlines()
        assert lines == [
            "Name,Year,Letterboxd URI,Rating",
            "Arrival,2016,https://letterboxd.com/film/arrival-2016/,4.5",
            "Stalker,1979,https://letterboxd.com/film/stalker/,",
        ]

    def test_json_export(self, finished_job, tmp_path):
        json_path = tmp_path / "job.json"
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=finished_job)):
            result = runner.invoke(app, ["scrape", "alice", "--json", str(json_path)])

        assert result.exit_code == 0
        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["id"] == "job_abc"
        assert data["status"] == "completed"
        assert data["profileData"]["displayName"] == "Alice Smith"
        assert len(data["data"]) == 2

    def test_failed_job_still_exports(self, failed_job, tmp_path):
        """Test that partial results are written before exiting with an error."""
        csv_path = tmp_path / "films.csv"
        with patch("lbscraper.cli.main._scrape", new=AsyncMock(return_value=failed_job)):
            result = runner.invoke(app, ["scrape", "alice", "--csv", str(csv_path)])

        assert result.exit_code == 1
        assert csv_path.read_text(encoding="utf-8") == "Name,Year,Letterboxd URI,Rating\n"


# =============================================================================
# Test: foreground runner
# =============================================================================


class TestForegroundScrape:
    """Tests for _scrape against the fake site."""

    async def test_runs_job_to_completion(self, config, session_factory):
        mock_manager = MagicMock()
        mock_manager.session = lambda browser_config: session_factory()

        with patch("lbscraper.cli.main.BrowserManager", new=mock_manager):
            with patch("lbscraper.cli.main.cleanup", new=AsyncMock()) as mock_cleanup:
                job = await _scrape("alice", config)

        assert job.status == JobStatus.COMPLETED
        assert len(job.data) == 3
        assert job.profile_data.display_name == "Alice Smith"
        mock_cleanup.assert_awaited_once()

    async def test_cleans_up_after_failure(self, config, fake_session, session_factory):
        fake_session.navigation_errors[
            "https://letterboxd.com/alice/films/by/rated-date/"
        ] = RuntimeError("browser crashed")
        mock_manager = MagicMock()
        mock_manager.session = lambda browser_config: session_factory()

        with patch("lbscraper.cli.main.BrowserManager", new=mock_manager):
            with patch("lbscraper.cli.main.cleanup", new=AsyncMock()) as mock_cleanup:
                job = await _scrape("alice", config)

        assert job.status == JobStatus.FAILED
        assert job.error == "browser crashed"
        mock_cleanup.assert_awaited_once()


# =============================================================================
# Test: serve
# =============================================================================


class TestServeCommand:
    """Tests for 'lbscraper serve'."""

    def test_runs_uvicorn(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--host", "127.0.0.1", "--port", "9000"])

        assert result.exit_code == 0
        mock_run.assert_called_once_with(
            "lbscraper.api.app:create_app",
            factory=True,
            host="127.0.0.1",
            port=9000,
            reload=False,
        )
