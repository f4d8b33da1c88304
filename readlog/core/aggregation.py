"""Aggregation - Pure functions folding log entries into derived views.

All functions are pure: same input always produces same output, no side effects.
Raw store documents are mapped into LogEntry exactly once, by
entries_from_documents; everything downstream trusts the typed entries.
"""

import calendar
import logging
from datetime import date
from typing import Any, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from .models import (
    DataIssue,
    ImportBatch,
    LogEntry,
    LogType,
    MonthOverview,
    ReadingAggregate,
    ReadingStats,
    ReadingTotals,
)
from .streaks import current_streak


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail["loc"]) or "document"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


def validate_documents(
    model: type[ModelT],
    documents: Iterable[Mapping[str, Any]],
) -> tuple[list[ModelT], list[DataIssue]]:
    """Validate raw store documents into models, one DataIssue per failure.

    Args:
        model: Model class each document should satisfy
        documents: Document dicts; an "id" key carries the document id

    Returns:
        Tuple of (valid models, data issues)
    """
    valid: list[ModelT] = []
    issues: list[DataIssue] = []

    for document in documents:
        document_id = document.get("id")
        try:
            valid.append(model.model_validate(dict(document)))
        except ValidationError as e:
            message = _describe_validation_error(e)
            logger.warning("Invalid %s document %s: %s", model.__name__, document_id, message)
            issues.append(DataIssue(document_id=document_id, message=message))

    return valid, issues


def entries_from_documents(
    documents: Iterable[Mapping[str, Any]],
) -> tuple[list[LogEntry], list[DataIssue]]:
    """Validate raw log documents into LogEntry objects.

    Documents with an unknown log type, a negative or non-numeric value, or a
    malformed date are not dropped silently: each one becomes a DataIssue.
    """
    return validate_documents(LogEntry, documents)


def batches_from_documents(
    documents: Iterable[Mapping[str, Any]],
) -> tuple[list[ImportBatch], list[DataIssue]]:
    """Validate raw import batch documents; the document id is the batch id."""
    return validate_documents(ImportBatch, ({"batchId": d.get("id"), **d} for d in documents))


def calculate_totals(entries: Iterable[LogEntry]) -> ReadingTotals:
    """Sum values per log type."""
    sums = {log_type: 0.0 for log_type in LogType}
    for entry in entries:
        sums[entry.log_type] += entry.value
    return ReadingTotals(
        minutes=sums[LogType.MINUTES],
        pages=sums[LogType.PAGES],
        books=sums[LogType.BOOKS],
    )


def aggregate_logs(entries: Iterable[LogEntry]) -> ReadingAggregate:
    """Fold entries into totals, the unique-day set and the date bounds.

    Args:
        entries: A reader's log entries, in any order

    Returns:
        ReadingAggregate; earliest/latest are None when there are no entries
    """
    entries = list(entries)
    unique_dates = frozenset(e.log_date_string for e in entries)

    return ReadingAggregate(
        totals=calculate_totals(entries),
        unique_dates=unique_dates,
        # Zero-padded ISO strings sort in calendar order
        earliest=min(unique_dates) if unique_dates else None,
        latest=max(unique_dates) if unique_dates else None,
        entry_count=len(entries),
    )


def month_prefix(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def days_in_month(year: int, month: int) -> int:
    """Calendar days in a month, leap years included."""
    return calendar.monthrange(year, month)[1]


def month_overview(
    entries: Iterable[LogEntry],
    year: int,
    month: int,
    today: date,
) -> MonthOverview:
    """Totals and day-completion for one calendar month.

    Completion is measured against today's day-of-month for the current
    month and against the full month length otherwise.

    Args:
        entries: A reader's log entries
        year: Calendar year
        month: Calendar month (1-12)
        today: The reader's current date

    Returns:
        MonthOverview for the requested month
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")

    prefix = month_prefix(year, month)
    month_entries = [e for e in entries if e.log_date_string.startswith(prefix)]
    aggregate = aggregate_logs(month_entries)

    length = days_in_month(year, month)
    if (today.year, today.month) == (year, month):
        effective_days = today.day
    else:
        effective_days = length

    return MonthOverview(
        year=year,
        month=month,
        totals=aggregate.totals,
        logged_dates=aggregate.unique_dates,
        days_in_month=length,
        effective_days=effective_days,
        completion_ratio=len(aggregate.unique_dates) / effective_days,
    )


def reading_stats(reader_id: str, entries: Iterable[LogEntry], today: date) -> ReadingStats:
    """Headline dashboard numbers, with the live streak as of today."""
    aggregate = aggregate_logs(entries)

    return ReadingStats(
        reader_id=reader_id,
        current_streak=current_streak(aggregate.sorted_dates, today),
        last_log_date=aggregate.latest,
        first_log_date=aggregate.earliest,
        totals=aggregate.totals,
        unique_days=len(aggregate.unique_dates),
    )


def recent_activity(entries: Iterable[LogEntry], limit: int = 10) -> list[LogEntry]:
    """Most recent entries, newest date first."""
    return sorted(entries, key=lambda e: e.log_date_string, reverse=True)[:limit]


def book_catalog(entries: Iterable[LogEntry]) -> list[tuple[str, str]]:
    """Unique (title, author) pairs, in first-seen order.

    Entries missing either a title or an author are not catalogued.
    """
    seen: dict[tuple[str, str], None] = {}
    for entry in entries:
        if entry.book_title and entry.book_author:
            seen.setdefault((entry.book_title, entry.book_author), None)
    return list(seen)


def suggest_books(catalog: list[tuple[str, str]], query: str) -> list[tuple[str, str]]:
    """Case-insensitive substring match on title or author."""
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        (title, author)
        for title, author in catalog
        if needle in title.lower() or needle in author.lower()
    ]


def count_by_type(entries: Iterable[LogEntry]) -> dict[LogType, int]:
    """Number of entries per log type."""
    counts = {log_type: 0 for log_type in LogType}
    for entry in entries:
        counts[entry.log_type] += 1
    return counts
