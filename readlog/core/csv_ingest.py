"""CSV Ingestion - Parse spreadsheet exports into log records.

Expected columns: Date (M/D/YYYY), Log Type, Log Value, and optionally
Title, Author and Source. Rows are parsed independently; a bad row is
reported as an IngestIssue and never aborts the file.
"""

import csv
import io
import logging
import math
from datetime import date
from typing import Iterable, Mapping

from .errors import RecordParseError
from .models import IngestIssue, IngestResult, LogType, ParsedLog
from .text_ingest import normalize_log_type


logger = logging.getLogger(__name__)

# Row 1 is the header, so the first data row is row 2
FIRST_DATA_ROW = 2


def parse_us_date(value: str) -> str:
    """Convert M/D/YYYY into YYYY-MM-DD.

    Raises:
        RecordParseError: If the value is not a real M/D/YYYY date
    """
    parts = (value or "").strip().split("/")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        raise RecordParseError(f'Invalid date "{value}"')

    month, day, year = (int(p) for p in parts)
    if len(parts[2].strip()) != 4:
        raise RecordParseError(f'Invalid year in date "{value}"')

    date_string = f"{year:04d}-{month:02d}-{day:02d}"
    try:
        date.fromisoformat(date_string)
    except ValueError as e:
        raise RecordParseError(f'Invalid date "{value}": {e}') from e
    return date_string


def parse_log_value(value: str) -> float:
    """Parse a non-negative numeric log value.

    Raises:
        RecordParseError: If the value is missing, non-numeric or negative
    """
    try:
        number = float((value or "").strip())
    except ValueError as e:
        raise RecordParseError(f'Invalid value "{value}"') from e

    if math.isnan(number) or math.isinf(number):
        raise RecordParseError(f'Invalid value "{value}"')
    if number < 0:
        raise RecordParseError(f'Negative value "{value}"')
    return number


def _optional(row: Mapping[str, str | None], column: str) -> str | None:
    value = (row.get(column) or "").strip()
    return value or None


def parse_csv_row(row: Mapping[str, str | None], row_number: int) -> ParsedLog:
    """Turn one CSV row into a ParsedLog.

    Raises:
        RecordParseError: If any required field is invalid
    """
    log_date_string = parse_us_date(row.get("Date") or "")

    raw_type = row.get("Log Type") or ""
    log_type = normalize_log_type(raw_type)
    if log_type is None:
        raise RecordParseError(f'Unknown log type "{raw_type}"')

    value = parse_log_value(row.get("Log Value") or "")
    if log_type is LogType.BOOKS and not value.is_integer():
        logger.warning("Row %d: fractional books value %s", row_number, value)

    return ParsedLog(
        log_date_string=log_date_string,
        log_type=log_type,
        value=value,
        book_title=_optional(row, "Title"),
        book_author=_optional(row, "Author"),
        source_name=_optional(row, "Source"),
        source_row=row_number,
    )


def parse_csv_rows(rows: Iterable[Mapping[str, str | None]]) -> IngestResult:
    """Parse dict rows (as produced by csv.DictReader).

    Args:
        rows: Data rows keyed by column header

    Returns:
        IngestResult with parsed records and one issue per rejected row
    """
    records: list[ParsedLog] = []
    issues: list[IngestIssue] = []

    for offset, row in enumerate(rows):
        row_number = offset + FIRST_DATA_ROW
        try:
            records.append(parse_csv_row(row, row_number))
        except RecordParseError as e:
            logger.warning("Row %d: %s", row_number, e)
            issues.append(
                IngestIssue(
                    line_number=row_number,
                    line=",".join(str(v) for v in row.values() if v is not None),
                    message=str(e),
                )
            )

    logger.info("Parsed %d CSV rows (%d rejected)", len(records), len(issues))
    return IngestResult(records=records, issues=issues)


def parse_csv_text(text: str) -> IngestResult:
    """Parse CSV text with a header row.

    Header names and cell values are trimmed; blank lines are skipped.
    """
    reader = csv.DictReader(io.StringIO(text), skipinitialspace=True)
    if reader.fieldnames:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]

    rows = (
        {key: value.strip() if isinstance(value, str) else value for key, value in row.items() if key is not None}
        for row in reader
        if any((v or "").strip() for v in row.values() if isinstance(v, str))
    )
    return parse_csv_rows(rows)
