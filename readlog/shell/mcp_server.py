"""MCP Server - Tool definitions for reading log queries.

Every tool takes the reader id explicitly; there is no ambient "current
reader". Authentication is handled in front of this service.
"""

import logging
from datetime import date

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from pydantic import ValidationError

from ..core.achievements import evaluate_achievements, partition_achievements, snapshot_from_stats
from ..core.aggregation import (
    aggregate_logs,
    book_catalog,
    month_overview as build_month_overview,
    reading_stats as build_reading_stats,
    recent_activity as select_recent_activity,
    suggest_books,
)
from ..core.errors import PreconditionError, StoreError
from ..core.models import AchievementProgress, LogEntry, LogSource
from ..core.streaks import gaps_between, trailing_streak
from ..core.text_ingest import normalize_log_type
from .config import AppConfig
from .firestore_client import FirestoreConfig, ReadingLogFirestoreClient


logger = logging.getLogger(__name__)

transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=True,
    allowed_hosts=[
        "localhost:*",
        "127.0.0.1:*",
        "*.run.app:*",
        "*.run.app",
    ],
)

mcp = FastMCP(
    "readlog",
    instructions="""ReadLog - Reading activity tracker.

Use these tools to look up a reader's streak, totals, monthly progress and
achievements, and to log new reading sessions.

Every tool needs the reader's id (for example "luke").
After logging, show the updated reading stats.""",
    stateless_http=True,
    transport_security=transport_security,
)

# Lazy-initialized clients
_firestore_client: ReadingLogFirestoreClient | None = None
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or load configuration."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def get_firestore_client() -> ReadingLogFirestoreClient:
    """Get or create Firestore client."""
    global _firestore_client
    if _firestore_client is None:
        config = get_config()
        _firestore_client = ReadingLogFirestoreClient(
            FirestoreConfig(project_id=config.project_id, database=config.database)
        )
    return _firestore_client


def _load_entries(reader_id: str) -> list[LogEntry]:
    get_config().check_reader_id(reader_id)
    entries, _ = get_firestore_client().get_logs(reader_id)
    return entries


def _achievement_dict(progress: AchievementProgress) -> dict:
    definition = progress.definition
    return {
        "id": definition.id,
        "name": definition.name,
        "description": definition.description,
        "icon": definition.icon,
        "category": definition.category,
        "target": definition.target,
        "current": progress.current,
        "is_completed": progress.is_completed,
    }


# ==================== Query Tools ====================


@mcp.tool()
def reading_stats(reader_id: str) -> dict:
    """Current streak, last log date and lifetime totals for a reader.

    Args:
        reader_id: The reader's id

    Returns:
        Dictionary with streak, dates and per-type totals
    """
    try:
        entries = _load_entries(reader_id)
    except (PreconditionError, StoreError) as e:
        return {"error": str(e)}

    stats = build_reading_stats(reader_id, entries, date.today())
    return {
        "reader_id": reader_id,
        "current_streak": stats.current_streak,
        "last_log_date": stats.last_log_date,
        "first_log_date": stats.first_log_date,
        "unique_days": stats.unique_days,
        "totals": stats.totals.model_dump(),
    }


@mcp.tool()
def month_overview(reader_id: str, year: int | None = None, month: int | None = None) -> dict:
    """Totals and day completion for one month (defaults to the current month).

    Args:
        reader_id: The reader's id
        year: Calendar year (optional)
        month: Calendar month 1-12 (optional)

    Returns:
        Dictionary with totals, logged dates and completion percentage
    """
    today = date.today()
    try:
        entries = _load_entries(reader_id)
        year = year if year is not None else today.year
        month = month if month is not None else today.month
        overview = build_month_overview(entries, year, month, today)
    except (PreconditionError, StoreError, ValueError) as e:
        return {"error": str(e)}

    return {
        "year": overview.year,
        "month": overview.month,
        "days_logged": overview.days_logged,
        "days_in_month": overview.days_in_month,
        "effective_days": overview.effective_days,
        "completion_percent": round(overview.completion_ratio * 100, 1),
        "logged_dates": sorted(overview.logged_dates),
        "totals": overview.totals.model_dump(),
    }


@mcp.tool()
def achievements(reader_id: str) -> dict:
    """Completed achievements and the nearest ones still in progress.

    Args:
        reader_id: The reader's id

    Returns:
        Dictionary with completed and in_progress achievement lists
    """
    try:
        entries = _load_entries(reader_id)
    except (PreconditionError, StoreError) as e:
        return {"error": str(e)}

    stats = build_reading_stats(reader_id, entries, date.today())
    report = partition_achievements(evaluate_achievements(snapshot_from_stats(stats)))
    return {
        "completed": [_achievement_dict(p) for p in report.completed],
        "in_progress": [_achievement_dict(p) for p in report.in_progress],
    }


@mcp.tool()
def recent_activity(reader_id: str, limit: int = 10) -> list[dict]:
    """Most recent log entries for a reader, newest first.

    Args:
        reader_id: The reader's id
        limit: Maximum entries to return

    Returns:
        List of entries with date, type, value and book
    """
    try:
        entries = _load_entries(reader_id)
    except (PreconditionError, StoreError) as e:
        return [{"error": str(e)}]

    return [
        {
            "id": e.id,
            "date": e.log_date_string,
            "log_type": e.log_type.value,
            "value": e.value,
            "book_title": e.book_title,
            "book_author": e.book_author,
        }
        for e in select_recent_activity(entries, limit)
    ]


@mcp.tool()
def streak_gaps(reader_id: str) -> dict:
    """Every break in a reader's logged days, for diagnostics.

    Args:
        reader_id: The reader's id

    Returns:
        Dictionary with the historical trailing streak and the gap list
    """
    try:
        entries = _load_entries(reader_id)
    except (PreconditionError, StoreError) as e:
        return {"error": str(e)}

    dates = aggregate_logs(entries).sorted_dates
    return {
        "unique_days": len(dates),
        "trailing_streak": trailing_streak(dates),
        "gaps": [gap.model_dump() for gap in gaps_between(dates)],
    }


@mcp.tool()
def list_books(reader_id: str, query: str | None = None) -> list[dict]:
    """Books a reader has logged, optionally filtered by title or author.

    Args:
        reader_id: The reader's id
        query: Case-insensitive search text (optional)

    Returns:
        List of {title, author}
    """
    try:
        entries = _load_entries(reader_id)
    except (PreconditionError, StoreError) as e:
        return [{"error": str(e)}]

    catalog = book_catalog(entries)
    if query:
        catalog = suggest_books(catalog, query)
    return [{"title": title, "author": author} for title, author in catalog]


# ==================== Logging Tools ====================


@mcp.tool()
def log_reading(
    reader_id: str,
    log_type: str,
    value: float,
    log_date: str | None = None,
    book_title: str | None = None,
    book_author: str | None = None,
) -> dict:
    """Add a reading entry for a reader.

    Args:
        reader_id: The reader's id
        log_type: "minutes", "pages" or "books"
        value: Positive amount read
        log_date: Date in YYYY-MM-DD format (defaults to today)
        book_title: Optional book title
        book_author: Optional book author

    Returns:
        The created entry id and updated reading stats
    """
    today = date.today()
    log_date = log_date or today.isoformat()

    normalized = normalize_log_type(log_type)
    if normalized is None:
        return {"error": f'Unknown log type "{log_type}". Use minutes, pages or books.'}
    if value <= 0:
        return {"error": "Please enter a valid positive number."}

    try:
        if date.fromisoformat(log_date) > today:
            return {"error": "Log date cannot be in the future."}
        get_config().check_reader_id(reader_id)
        entry = LogEntry(
            reader_id=reader_id,
            log_date_string=log_date,
            log_type=normalized,
            value=float(value),
            book_title=(book_title or "").strip() or None,
            book_author=(book_author or "").strip() or None,
            source=LogSource(name="web-form", details="Manual entry via reading log tool"),
        )
    except (ValueError, ValidationError) as e:
        return {"error": f"Invalid entry: {e}"}

    db = get_firestore_client()
    try:
        entry_id = db.add_log(entry, created_by="mcp-tool")
        entries, _ = db.get_logs(reader_id)
    except StoreError as e:
        return {"error": str(e)}

    stats = build_reading_stats(reader_id, entries, today)
    return {
        "id": entry_id,
        "entry": {
            "date": entry.log_date_string,
            "log_type": entry.log_type.value,
            "value": entry.value,
            "book_title": entry.book_title,
            "book_author": entry.book_author,
        },
        "reading_stats": {
            "current_streak": stats.current_streak,
            "totals": stats.totals.model_dump(),
        },
    }
