"""Configuration - Settings loaded from environment variables."""

import logging
import os
import re
from dataclasses import dataclass, field

from ..core.errors import PreconditionError


# Firestore rejects write batches above this many operations
FIRESTORE_BATCH_LIMIT = 500

READER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AppConfig:
    """Application configuration.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        batch_limit: Maximum operations per Firestore write batch
        allowed_readers: Reader ids accepted by imports (empty allows any)
        log_level: Root logging level name
        host: HTTP bind address
        port: HTTP port
    """

    project_id: str | None = None
    database: str | None = None
    batch_limit: int = FIRESTORE_BATCH_LIMIT
    allowed_readers: frozenset[str] = field(default_factory=frozenset)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables.

        Raises:
            PreconditionError: If a variable holds an invalid value
        """
        try:
            batch_limit = int(os.environ.get("READLOG_BATCH_LIMIT", str(FIRESTORE_BATCH_LIMIT)))
            port = int(os.environ.get("PORT", "8080"))
        except ValueError as e:
            raise PreconditionError(f"Invalid numeric setting: {e}") from e

        if not 1 <= batch_limit <= FIRESTORE_BATCH_LIMIT:
            raise PreconditionError(
                f"READLOG_BATCH_LIMIT must be between 1 and {FIRESTORE_BATCH_LIMIT}, got {batch_limit}"
            )

        readers = os.environ.get("READLOG_READERS", "")
        allowed = frozenset(r.strip() for r in readers.split(",") if r.strip())

        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise PreconditionError(f"Unknown LOG_LEVEL: {log_level}")

        return cls(
            project_id=os.environ.get("FIRESTORE_PROJECT") or None,
            database=os.environ.get("FIRESTORE_DATABASE") or None,
            batch_limit=batch_limit,
            allowed_readers=allowed,
            log_level=log_level,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=port,
        )

    def check_reader_id(self, reader_id: str) -> str:
        """Validate a reader id before any I/O.

        Raises:
            PreconditionError: If the id is empty, malformed or not allowed
        """
        if not reader_id or not READER_ID_PATTERN.match(reader_id):
            raise PreconditionError(f'Invalid readerId "{reader_id}"')
        if self.allowed_readers and reader_id not in self.allowed_readers:
            allowed = ", ".join(sorted(self.allowed_readers))
            raise PreconditionError(f'Invalid readerId "{reader_id}". Must be one of: {allowed}')
        return reader_id


def configure_logging(config: AppConfig) -> None:
    """Set up root logging for an entry point."""
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
