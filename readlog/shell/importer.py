"""Batch Import - Write ingested records to Firestore in bounded groups.

A run optionally clears the reader first, then commits records in groups of
at most batch_limit, each group before the next, and finally saves one
ImportBatch summary. There is no transaction across the whole run: an
interrupted run leaves the committed groups in place and no ImportBatch
document, which is how it can be told apart from a finished one.
"""

import logging
import time
from pathlib import Path
from typing import Iterable

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..core.aggregation import calculate_totals
from ..core.csv_ingest import parse_csv_text
from ..core.errors import PreconditionError
from ..core.models import (
    ImportBatch,
    ImportPreview,
    ImportSummary,
    IngestResult,
    LogEntry,
    LogSource,
    ParsedLog,
)
from ..core.text_ingest import parse_text
from .config import AppConfig
from .firestore_client import ReadingLogFirestoreClient


logger = logging.getLogger(__name__)


def make_batch_id(prefix: str, now: float | None = None) -> str:
    """Time-derived batch id, e.g. csv-import-1712345678901."""
    if now is None:
        now = time.time()
    return f"{prefix}-{int(now * 1000)}"


def read_input(path: str | Path) -> str:
    """Read an input file, rejecting a missing path before any store I/O.

    Raises:
        PreconditionError: If no path was given or the file does not exist
    """
    if not path:
        raise PreconditionError("An input file path is required")
    file_path = Path(path)
    if not file_path.is_file():
        raise PreconditionError(f"File not found: {file_path}")
    return file_path.read_text(encoding="utf-8-sig")


def read_report_text(path: str | Path) -> str:
    """Text of a reading report: extracted page by page from a PDF, read as-is otherwise.

    Raises:
        PreconditionError: If the file is missing or is not a readable PDF
    """
    if not path:
        raise PreconditionError("An input file path is required")
    file_path = Path(path)
    if file_path.suffix.lower() != ".pdf":
        return read_input(file_path)
    if not file_path.is_file():
        raise PreconditionError(f"File not found: {file_path}")

    try:
        reader = PdfReader(file_path)
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise PreconditionError(f"Could not read PDF {file_path}: {e}") from e

    logger.info("Extracted text from %d PDF pages", len(pages))
    return "\n".join(pages)


class LogImporter:
    """Runs one import against a reader's log collection."""

    def __init__(
        self,
        store: ReadingLogFirestoreClient,
        config: AppConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or AppConfig()

    def clear_reader(self, reader_id: str) -> tuple[int, int]:
        """Delete a reader's logs and import batches.

        Returns:
            Tuple of (logs deleted, batches deleted)
        """
        logger.info("Clearing existing data for reader: %s", reader_id)
        logs = self.store.delete_all_logs(reader_id, self.config.batch_limit)
        batches = self.store.delete_import_batches(reader_id, self.config.batch_limit)
        logger.info("Deleted %d logs and %d import batches", logs, batches)
        return logs, batches

    def import_records(
        self,
        reader_id: str,
        records: Iterable[ParsedLog],
        source: LogSource,
        batch_prefix: str,
        created_by: str,
        error_rows: int = 0,
    ) -> ImportSummary:
        """Commit records in bounded groups, then save the batch summary.

        Args:
            reader_id: Reader receiving the records
            records: Validated records from an ingestion front end
            source: Provenance stored on records without their own source name
            batch_prefix: Prefix for the generated batch id
            created_by: Writer tag stored on each document
            error_rows: Rows the front end already rejected

        Returns:
            ImportSummary of the run

        Raises:
            StoreError: If any write fails; earlier groups stay committed
        """
        reader_id = self.config.check_reader_id(reader_id)
        batch_id = make_batch_id(batch_prefix)
        logger.info("Starting import %s for reader: %s", batch_id, reader_id)

        written: list[LogEntry] = []
        group: list[LogEntry] = []

        for record in records:
            group.append(self._to_entry(reader_id, record, source, batch_id))
            if len(group) >= self.config.batch_limit:
                self.store.commit_logs(reader_id, group, created_by)
                written.extend(group)
                logger.info("Committed batch... Total imported: %d", len(written))
                group = []

        if group:
            self.store.commit_logs(reader_id, group, created_by)
            written.extend(group)
            logger.info("Committed final batch. Total imported: %d", len(written))

        totals = calculate_totals(written)
        self.store.save_import_batch(
            ImportBatch(
                batch_id=batch_id,
                reader_id=reader_id,
                source=source,
                total_rows=len(written),
                error_rows=error_rows,
                totals=totals,
            ),
            created_by,
        )

        summary = ImportSummary(
            batch_id=batch_id,
            reader_id=reader_id,
            imported=len(written),
            errors=error_rows,
            totals=totals,
        )
        logger.info(
            "Import complete: %d imported, %d errors, batch %s",
            summary.imported, summary.errors, batch_id,
        )
        return summary

    @staticmethod
    def _to_entry(reader_id: str, record: ParsedLog, source: LogSource, batch_id: str) -> LogEntry:
        if record.source_name:
            source = LogSource(name=record.source_name, details=source.details)
        return LogEntry(
            reader_id=reader_id,
            log_date_string=record.log_date_string,
            log_type=record.log_type,
            value=record.value,
            book_title=record.book_title,
            book_author=record.book_author,
            source=source,
            import_batch_id=batch_id,
            import_source_row=record.source_row,
        )

    # ==================== Entry Points ====================

    def import_csv(self, path: str | Path, reader_id: str, fresh: bool = False) -> ImportSummary:
        """Import a CSV export, optionally clearing the reader first.

        Raises:
            PreconditionError: On a missing file or invalid reader id
            StoreError: If any store operation fails
        """
        reader_id = self.config.check_reader_id(reader_id)
        text = read_input(path)
        name = Path(path).name

        result = parse_csv_text(text)
        self._log_issues(result)

        if fresh:
            self.clear_reader(reader_id)
            source = LogSource(name="csv-import", details=f"Complete import from {name}")
            prefix, created_by = "complete-import", "fresh-import-script"
        else:
            source = LogSource(name="csv-import", details=f"Imported from {name}")
            prefix, created_by = "csv-import", "csv-import-script"

        return self.import_records(
            reader_id,
            result.records,
            source=source,
            batch_prefix=prefix,
            created_by=created_by,
            error_rows=result.error_count,
        )

    def import_text(
        self,
        path: str | Path,
        reader_id: str,
        dry_run: bool = False,
    ) -> ImportSummary | ImportPreview:
        """Import a reading report PDF, or text already extracted from one.

        With dry_run, nothing is written and the parsed records are returned
        as a preview.

        Raises:
            PreconditionError: On a missing file, an unreadable PDF or an invalid reader id
            StoreError: If any store operation fails
        """
        reader_id = self.config.check_reader_id(reader_id)
        text = read_report_text(path)

        result = parse_text(text)
        self._log_issues(result)

        if dry_run:
            logger.info("Dry run enabled - not writing to Firestore")
            return ImportPreview(reader_id=reader_id, records=result.records, issues=result.issues)

        return self.import_records(
            reader_id,
            result.records,
            source=LogSource(name="pdf-import", details=f"Imported from {Path(path).name}"),
            batch_prefix="pdf-import",
            created_by="pdf-import-script",
            error_rows=result.error_count,
        )

    @staticmethod
    def _log_issues(result: IngestResult) -> None:
        logger.info("Parsed %d records, %d rejected", len(result.records), result.error_count)
        for issue in result.issues:
            logger.debug("Rejected line %d (%s): %s", issue.line_number, issue.line, issue.message)
