"""Text Ingestion - Rebuild log records from PDF-extracted reading reports.

The report lays out each entry as a book title (possibly wrapped over several
lines), an author line, and a trailing "<Month D, YYYY> <type> <value>"
suffix. The suffix either shares a line with the last piece of title/author
text ("combined" form) or stands alone ("date-only" form). Page furniture
such as headers, footers and sandbox notices is filtered out first.

A line that cannot be parsed is skipped with an IngestIssue; the title and
author buffers are always reset afterwards so that stale text never bleeds
into the following record.
"""

import logging
import re
from datetime import date
from typing import Iterable

from .errors import RecordParseError
from .models import IngestIssue, IngestResult, LogType, ParsedLog


logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

MONTH_LOOKUP = {name.lower(): index for index, name in enumerate(MONTH_NAMES, start=1)}

LOG_TYPE_SYNONYMS = {
    "minute": LogType.MINUTES,
    "minutes": LogType.MINUTES,
    "page": LogType.PAGES,
    "pages": LogType.PAGES,
    "book": LogType.BOOKS,
    "books": LogType.BOOKS,
}

HEADER_LINES = frozenset([
    "The Log",
    "Title & Author",
    "Title & Author \tAdded On \tLog Type Log Value",
    "Added On",
    "Log Type",
    "Log Value",
])

HEADER_PREFIXES = ("Summary -", "Books Completed")

SANDBOX_NOTICE = "Your Beanstack site is in Sandbox"

FOOTER_PATTERNS = [
    re.compile(r"^--\s*\d+\s+of\s+\d+\s*--$", re.IGNORECASE),
    re.compile(r"^Page\s+\d+", re.IGNORECASE),
]

_DATE = r"(?P<date>[A-Za-z]+ \d{1,2}, \d{4})"
_SUFFIX = _DATE + r"\s+(?P<type>[A-Za-z ]+?)\s+(?P<value>[\d,.]+)$"

DATE_LINE_PATTERN = re.compile(r"^" + _SUFFIX)
COMBINED_LINE_PATTERN = re.compile(r"^(?P<prefix>.+?)\s+" + _SUFFIX)
LONG_DATE_PATTERN = re.compile(r"^([A-Za-z]+) (\d{1,2}), (\d{4})$")


def is_boilerplate(line: str) -> bool:
    """Whether a line is page furniture rather than log content."""
    if not line:
        return True
    if line in HEADER_LINES:
        return True
    if line.startswith(HEADER_PREFIXES):
        return True
    if SANDBOX_NOTICE in line:
        return True
    return any(pattern.search(line) for pattern in FOOTER_PATTERNS)


def clean_lines(text: str) -> list[str]:
    """Split extracted text into trimmed, non-empty content lines."""
    lines = []
    for raw in re.split(r"\r?\n", text):
        line = raw.replace("\x0c", "").strip()
        if line and not is_boilerplate(line):
            lines.append(line)
    return lines


def normalize_log_type(raw_type: str) -> LogType | None:
    """Map a type word like "Minutes" or "page" onto LogType, or None."""
    if not raw_type:
        return None
    return LOG_TYPE_SYNONYMS.get(raw_type.strip().lower())


def parse_long_date(value: str) -> str:
    """Convert "Month D, YYYY" into YYYY-MM-DD.

    Raises:
        RecordParseError: On a malformed date or an unknown month name
    """
    match = LONG_DATE_PATTERN.match(value.strip())
    if not match:
        raise RecordParseError(f'Invalid date value "{value}"')

    month_name, day, year = match.groups()
    month = MONTH_LOOKUP.get(month_name.lower())
    if month is None:
        raise RecordParseError(f'Unknown month "{month_name}" in date "{value}"')

    try:
        return date(int(year), month, int(day)).isoformat()
    except ValueError as e:
        raise RecordParseError(f'Invalid date "{value}": {e}') from e


def parse_integer_value(raw_value: str) -> int:
    """Strip every non-digit character and parse what remains.

    Raises:
        RecordParseError: If no digits remain
    """
    digits = re.sub(r"\D", "", raw_value)
    if not digits:
        raise RecordParseError(f'Invalid log value "{raw_value}"')
    return int(digits)


def _is_metadata_line(line: str) -> bool:
    return bool(DATE_LINE_PATTERN.match(line) or COMBINED_LINE_PATTERN.match(line))


class _LineParser:
    """Single pass over content lines, holding the title/author buffers."""

    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.title_parts: list[str] = []
        self.author_parts: list[str] = []
        self.records: list[ParsedLog] = []
        self.issues: list[IngestIssue] = []

    def reset(self) -> None:
        self.title_parts = []
        self.author_parts = []

    def skip(self, index: int, message: str) -> None:
        logger.warning("Line %d skipped: %s", index + 1, message)
        self.issues.append(IngestIssue(line_number=index + 1, line=self.lines[index], message=message))
        self.reset()

    def emit(self, index: int, title: str, author: str, match: re.Match) -> None:
        raw_type = match.group("type").strip()
        raw_value = match.group("value").strip()
        label = f'"{title}"' if title else "entry"

        try:
            log_date_string = parse_long_date(match.group("date"))
            log_type = normalize_log_type(raw_type)
            if log_type is None:
                raise RecordParseError(f'Skipping {label} due to unknown log type "{raw_type}"')
            value = parse_integer_value(raw_value)
        except RecordParseError as e:
            self.skip(index, str(e))
            return

        self.records.append(
            ParsedLog(
                log_date_string=log_date_string,
                log_type=log_type,
                value=value,
                book_title=title or None,
                book_author=author or None,
                source_row=index + 1,
            )
        )
        self.reset()

    def buffered(self) -> tuple[str, str]:
        return " ".join(self.title_parts).strip(), " ".join(self.author_parts).strip()

    def feed(self, index: int, line: str) -> None:
        combined = COMBINED_LINE_PATTERN.match(line)
        if combined:
            title, author = self.buffered()
            prefix = combined.group("prefix").strip()
            if not title:
                title = prefix
            else:
                author = " ".join(filter(None, [author, prefix]))
            self.emit(index, title, author, combined)
            return

        date_only = DATE_LINE_PATTERN.match(line)
        if date_only:
            title, author = self.buffered()
            if not title:
                self.skip(index, f'Missing title before date "{date_only.group("date")}"')
                return
            self.emit(index, title, author, date_only)
            return

        next_line = self.lines[index + 1] if index + 1 < len(self.lines) else ""
        if self.title_parts and not self.author_parts and _is_metadata_line(next_line):
            self.author_parts.append(line)
        else:
            self.title_parts.append(line)

    def run(self) -> IngestResult:
        for index, line in enumerate(self.lines):
            self.feed(index, line)

        if self.title_parts or self.author_parts:
            title, author = self.buffered()
            leftover = " / ".join(filter(None, [title, author]))
            logger.warning("Trailing text without a date line: %s", leftover)
            self.issues.append(
                IngestIssue(
                    line_number=len(self.lines),
                    line=leftover,
                    message="Trailing text without a date line",
                )
            )
            self.reset()

        logger.info("Extracted %d log entries (%d skipped)", len(self.records), len(self.issues))
        return IngestResult(records=self.records, issues=self.issues)


def parse_lines(lines: Iterable[str]) -> IngestResult:
    """Build log records from content lines.

    Args:
        lines: Extracted text lines; blank and boilerplate lines are dropped

    Returns:
        IngestResult with one record per recognised entry and one issue per
        skipped entry
    """
    content = [line.strip() for line in lines]
    content = [line for line in content if not is_boilerplate(line)]
    return _LineParser(content).run()


def parse_text(text: str) -> IngestResult:
    """Parse a whole extracted-text dump."""
    return parse_lines(clean_lines(text))
