"""Tests for the CLI interface."""

from datetime import date, timedelta

import pytest
from typer.testing import CliRunner
from unittest.mock import MagicMock, patch

from readlog import cli
from readlog.cli import app
from readlog.core.errors import StoreError
from readlog.core.models import DataIssue, ImportBatch, LogEntry, LogSource, LogType, ReaderProfile
from readlog.shell.firestore_client import ReadingLogFirestoreClient


def days_ago(days: int) -> str:
    return (date.today() - timedelta(days=days)).isoformat()


def entry(day: str, log_type: LogType = LogType.PAGES, value: float = 10) -> LogEntry:
    return LogEntry(
        reader_id="luke",
        log_date_string=day,
        log_type=log_type,
        value=value,
        source=LogSource(name="csv-import"),
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every command with default configuration."""
    for name in ["READLOG_BATCH_LIMIT", "READLOG_READERS", "LOG_LEVEL", "FIRESTORE_PROJECT", "FIRESTORE_DATABASE"]:
        monkeypatch.delenv(name, raising=False)
    cli.reset_store()
    yield
    cli.reset_store()


@pytest.fixture
def store():
    """Mock store returned by get_store."""
    mock_store = MagicMock(spec=ReadingLogFirestoreClient)
    mock_store.get_logs.return_value = ([], [])
    mock_store.list_import_batches.return_value = ([], [])
    with patch.object(cli, "get_store", return_value=mock_store):
        yield mock_store


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "import-csv" in result.stdout

    def test_bad_config_exits(self, runner: CliRunner, store, monkeypatch):
        monkeypatch.setenv("READLOG_BATCH_LIMIT", "0")
        result = runner.invoke(app, ["stats", "luke"])
        assert result.exit_code == 1
        assert "READLOG_BATCH_LIMIT" in result.stdout


class TestImportCommands:
    """Tests for import-csv and import-text."""

    def test_import_csv(self, runner: CliRunner, store, tmp_path):
        path = tmp_path / "log.csv"
        path.write_text("Date,Log Type,Log Value\n3/5/2024,Pages,42\n3/6/2024,Minutes,20\n", encoding="utf-8")

        result = runner.invoke(app, ["import-csv", str(path), "luke"])

        assert result.exit_code == 0
        assert "Import complete for luke" in result.stdout
        assert "Successfully imported: 2 logs" in result.stdout
        store.commit_logs.assert_called_once()
        store.delete_all_logs.assert_not_called()

    def test_import_csv_fresh(self, runner: CliRunner, store, tmp_path):
        path = tmp_path / "log.csv"
        path.write_text("Date,Log Type,Log Value\n3/5/2024,Pages,42\n", encoding="utf-8")
        store.delete_all_logs.return_value = 3
        store.delete_import_batches.return_value = 1

        result = runner.invoke(app, ["import-csv", str(path), "luke", "--fresh"])

        assert result.exit_code == 0
        store.delete_all_logs.assert_called_once()

    def test_import_csv_missing_file(self, runner: CliRunner, store, tmp_path):
        result = runner.invoke(app, ["import-csv", str(tmp_path / "missing.csv"), "luke"])

        assert result.exit_code == 1
        assert "File not found" in result.stdout
        store.commit_logs.assert_not_called()

    def test_import_csv_store_failure(self, runner: CliRunner, store, tmp_path):
        path = tmp_path / "log.csv"
        path.write_text("Date,Log Type,Log Value\n3/5/2024,Pages,42\n", encoding="utf-8")
        store.commit_logs.side_effect = StoreError("Failed to commit logs for luke")

        result = runner.invoke(app, ["import-csv", str(path), "luke"])

        assert result.exit_code == 1
        assert "Failed to commit logs" in result.stdout

    def test_import_text_dry_run(self, runner: CliRunner, store, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text("Dune\nFrank Herbert\nMarch 5, 2024 Pages 42\nSmarch 6, 2024 Pages 1\n", encoding="utf-8")

        result = runner.invoke(app, ["import-text", str(path), "emy", "--dry-run"])

        assert result.exit_code == 0
        assert "Dry run enabled" in result.stdout
        assert "Total parsed logs: 1" in result.stdout
        assert "1 lines skipped" in result.stdout
        store.commit_logs.assert_not_called()


class TestReportCommands:
    """Tests for stats, month, achievements, gaps and verify."""

    def test_stats(self, runner: CliRunner, store):
        store.get_logs.return_value = ([entry(days_ago(1)), entry(days_ago(0))], [])

        result = runner.invoke(app, ["stats", "luke"])

        assert result.exit_code == 0
        assert "Current Streak:" in result.stdout
        assert "2 days" in result.stdout

    def test_stats_invalid_reader(self, runner: CliRunner, store):
        result = runner.invoke(app, ["stats", "not a reader"])

        assert result.exit_code == 1
        store.get_logs.assert_not_called()

    def test_month_invalid(self, runner: CliRunner, store):
        result = runner.invoke(app, ["month", "luke", "--year", "2024", "--month", "13"])
        assert result.exit_code == 1

    def test_month(self, runner: CliRunner, store):
        store.get_logs.return_value = ([entry("2024-02-01"), entry("2024-02-02")], [])

        result = runner.invoke(app, ["month", "luke", "--year", "2024", "--month", "2"])

        assert result.exit_code == 0
        assert "2 / 29" in result.stdout

    def test_achievements(self, runner: CliRunner, store):
        store.get_logs.return_value = ([entry(days_ago(0), LogType.BOOKS, 250)], [])

        result = runner.invoke(app, ["achievements", "luke"])

        assert result.exit_code == 0
        assert "Literary Master" in result.stdout
        assert "1 unlocked" in result.stdout

    def test_gaps_none(self, runner: CliRunner, store):
        store.get_logs.return_value = ([entry("2024-01-01"), entry("2024-01-02")], [])

        result = runner.invoke(app, ["gaps", "luke"])

        assert result.exit_code == 0
        assert "No gaps!" in result.stdout

    def test_gaps_found(self, runner: CliRunner, store):
        store.get_logs.return_value = ([entry("2024-01-01"), entry("2024-01-05")], [])

        result = runner.invoke(app, ["gaps", "luke"])

        assert result.exit_code == 0
        assert "Gaps found: 1" in result.stdout

    def test_verify_reports_issues(self, runner: CliRunner, store):
        store.get_logs.return_value = ([entry("2024-01-01")], [DataIssue(document_id="bad", message="logType: invalid")])
        store.list_import_batches.return_value = (
            [ImportBatch(batch_id="csv-import-1", reader_id="luke", source=LogSource(name="csv-import"), total_rows=1)],
            [],
        )

        result = runner.invoke(app, ["verify", "luke"])

        assert result.exit_code == 0
        assert "1 data issues found" in result.stdout
        assert "csv-import-1" in result.stdout

    def test_verify_reports_malformed_batch(self, runner: CliRunner, store):
        """A batch document that fails validation is listed, not fatal."""
        store.list_import_batches.return_value = (
            [],
            [DataIssue(document_id="csv-import-2", message="source: Field required")],
        )

        result = runner.invoke(app, ["verify", "luke"])

        assert result.exit_code == 0
        assert "Import batches: 1" in result.stdout
        assert "csv-import-2 is malformed" in result.stdout

    def test_month_zero_is_rejected(self, runner: CliRunner, store):
        """Month 0 is not read as "this month"."""
        result = runner.invoke(app, ["month", "luke", "--year", "2024", "--month", "0"])

        assert result.exit_code == 1
        assert "month must be 1-12" in result.stdout


class TestInitReaders:
    """Tests for init-readers."""

    def test_creates_missing_profiles(self, runner: CliRunner, store):
        store.get_reader.return_value = (None, [])

        result = runner.invoke(app, ["init-readers", "luke:Luke", "emy"])

        assert result.exit_code == 0
        saved = [call[0][0] for call in store.save_reader.call_args_list]
        assert [(p.reader_id, p.display_name) for p in saved] == [("luke", "Luke"), ("emy", "Emy")]

    def test_skips_existing(self, runner: CliRunner, store):
        store.get_reader.return_value = (ReaderProfile(reader_id="luke", display_name="Luke"), [])

        result = runner.invoke(app, ["init-readers", "luke:Luke"])

        assert result.exit_code == 0
        assert "already exists" in result.stdout
        store.save_reader.assert_not_called()

    def test_malformed_profile_is_not_overwritten(self, runner: CliRunner, store):
        store.get_reader.return_value = (None, [DataIssue(document_id="luke", message="displayName: Field required")])

        result = runner.invoke(app, ["init-readers", "luke"])

        assert result.exit_code == 0
        assert "exists but is malformed" in result.stdout
        store.save_reader.assert_not_called()
