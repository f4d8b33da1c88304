"""Core Data Models - Pydantic models for type safety.

All models are immutable value objects with no behavior beyond validation.
Field aliases mirror the camelCase document layout used in Firestore.
"""

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DATE_STRING_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_midnight(date_string: str) -> datetime:
    """Convert a YYYY-MM-DD string into a timestamp at UTC midnight."""
    return datetime.combine(date.fromisoformat(date_string), datetime.min.time(), tzinfo=timezone.utc)


def validate_date_string(value: str) -> str:
    """Reject anything that is not a real zero-padded YYYY-MM-DD date."""
    if not isinstance(value, str) or not DATE_STRING_PATTERN.match(value):
        raise ValueError(f"date must be in YYYY-MM-DD form, got {value!r}")
    date.fromisoformat(value)
    return value


class LogType(str, Enum):
    """Kinds of reading activity that can be logged."""

    MINUTES = "minutes"
    PAGES = "pages"
    BOOKS = "books"


class _Document(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class LogSource(_Document):
    """Provenance of a log entry."""

    name: str = Field(min_length=1, description="Short provenance tag, e.g. csv-import")
    details: Optional[str] = Field(default=None, description="Human readable detail")


class LogEntry(_Document):
    """One dated reading event for a reader."""

    id: Optional[str] = Field(default=None, exclude=True, description="Store document id")
    reader_id: str = Field(alias="readerId", min_length=1)
    log_date_string: str = Field(alias="logDateString", description="Date of the event (YYYY-MM-DD)")
    log_date: datetime = Field(alias="logDate", description="UTC midnight of log_date_string")
    log_type: LogType = Field(alias="logType")
    value: float = Field(ge=0, strict=True)
    book_title: Optional[str] = Field(default=None, alias="bookTitle")
    book_author: Optional[str] = Field(default=None, alias="bookAuthor")
    source: LogSource
    import_batch_id: Optional[str] = Field(default=None, alias="importBatchId")
    import_source_row: Optional[int] = Field(default=None, alias="importSourceRow")

    @model_validator(mode="before")
    @classmethod
    def derive_log_date(cls, data: Any) -> Any:
        if isinstance(data, dict):
            date_string = data.get("logDateString", data.get("log_date_string"))
            has_date = data.get("logDate") is not None or data.get("log_date") is not None
            if isinstance(date_string, str) and not has_date and DATE_STRING_PATTERN.match(date_string):
                data = {**data, "logDate": utc_midnight(date_string)}
        return data

    @field_validator("log_date_string")
    @classmethod
    def check_date_string(cls, value: str) -> str:
        return validate_date_string(value)

    @model_validator(mode="after")
    def check_log_date_matches(self) -> "LogEntry":
        stamp = self.log_date
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        if stamp.astimezone(timezone.utc).date().isoformat() != self.log_date_string:
            raise ValueError(
                f"logDate {self.log_date.isoformat()} does not match logDateString {self.log_date_string}"
            )
        return self

    def to_document(self) -> dict[str, Any]:
        """Serialize to the Firestore document layout, dropping unset fields."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="python")
        data["logType"] = self.log_type.value
        return data


class ParsedLog(_Document):
    """A validated record produced by an ingestion front end, not yet owned by a reader."""

    log_date_string: str
    log_type: LogType
    value: float = Field(ge=0)
    book_title: Optional[str] = None
    book_author: Optional[str] = None
    source_name: Optional[str] = Field(default=None, description="Per-row source override")
    source_row: Optional[int] = Field(default=None, description="Row or line number in the input")

    @field_validator("log_date_string")
    @classmethod
    def check_date_string(cls, value: str) -> str:
        return validate_date_string(value)


class ReadingTotals(_Document):
    """Per-type running sums."""

    minutes: float = 0
    pages: float = 0
    books: float = 0

    def get(self, log_type: LogType) -> float:
        return getattr(self, log_type.value)


class ImportBatch(_Document):
    """Metadata describing one completed ingestion run."""

    batch_id: str = Field(alias="batchId", min_length=1)
    reader_id: str = Field(alias="readerId", min_length=1)
    source: LogSource
    total_rows: int = Field(alias="totalRows", ge=0)
    error_rows: int = Field(default=0, alias="errorRows", ge=0)
    totals: ReadingTotals = Field(default_factory=ReadingTotals)
    processed_at: Optional[datetime] = Field(default=None, alias="processedAt")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="python")


class ReaderProfile(_Document):
    """Reader record stored at readers/{readerId}."""

    reader_id: str = Field(alias="readerId", min_length=1)
    display_name: str = Field(alias="displayName", min_length=1)
    full_name: Optional[str] = Field(default=None, alias="fullName")


class ReadingAggregate(_Document):
    """Result of folding a reader's log entries."""

    totals: ReadingTotals
    unique_dates: frozenset[str] = Field(default_factory=frozenset)
    earliest: Optional[str] = None
    latest: Optional[str] = None
    entry_count: int = Field(default=0, ge=0)

    @property
    def sorted_dates(self) -> list[str]:
        return sorted(self.unique_dates)


class MonthOverview(_Document):
    """Totals and completion for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    totals: ReadingTotals
    logged_dates: frozenset[str] = Field(default_factory=frozenset)
    days_in_month: int
    effective_days: int
    completion_ratio: float = Field(ge=0)

    @property
    def days_logged(self) -> int:
        return len(self.logged_dates)


class ReadingStats(_Document):
    """Headline numbers for a reader's dashboard."""

    reader_id: str
    current_streak: int = Field(ge=0)
    last_log_date: Optional[str] = None
    first_log_date: Optional[str] = None
    totals: ReadingTotals
    unique_days: int = Field(ge=0)


class StreakGap(_Document):
    """A break of more than one day between two logged dates."""

    from_date: str
    to_date: str
    days: int


class AchievementDefinition(_Document):
    """A static milestone in the achievement catalog."""

    id: str
    name: str
    category: str = Field(description="Snapshot key: streak, pages, minutes or books")
    target: float = Field(gt=0)
    description: str
    icon: str = ""


class AchievementProgress(_Document):
    """An achievement evaluated against a snapshot."""

    definition: AchievementDefinition
    current: float
    is_completed: bool

    @property
    def remaining(self) -> float:
        return max(self.definition.target - self.current, 0)


class AchievementReport(_Document):
    """Achievements partitioned for display."""

    completed: list[AchievementProgress]
    in_progress: list[AchievementProgress]


class IngestIssue(_Document):
    """A skipped row or line, with enough context to fix it by hand."""

    line_number: int
    line: str
    message: str


class IngestResult(_Document):
    """Output of an ingestion front end."""

    records: list[ParsedLog] = Field(default_factory=list)
    issues: list[IngestIssue] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.issues)


class DataIssue(_Document):
    """A stored document that failed validation at the read boundary."""

    document_id: Optional[str]
    message: str


class ImportSummary(_Document):
    """What an import run reports when it finishes."""

    batch_id: str
    reader_id: str
    imported: int
    errors: int
    totals: ReadingTotals


class ImportPreview(_Document):
    """Dry-run output: parsed records that would have been written."""

    reader_id: str
    records: list[ParsedLog]
    issues: list[IngestIssue]
