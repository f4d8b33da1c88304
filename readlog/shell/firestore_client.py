"""Firestore Client - Persistence for reading logs and import batches.

This module handles all database I/O for reading log operations.
All I/O is contained here; business logic is in the core module.
Any SDK failure is logged and re-raised as StoreError.
"""

import logging
from dataclasses import dataclass
from typing import Any

from google.cloud import firestore

from ..core.aggregation import batches_from_documents, entries_from_documents, validate_documents
from ..core.errors import StoreError
from ..core.models import DataIssue, ImportBatch, LogEntry, ReaderProfile
from .config import FIRESTORE_BATCH_LIMIT


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None


class ReadingLogFirestoreClient:
    """Client for persisting reading logs to Firestore.

    Document structure per reader:
        readers/{reader_id}: { readerId, displayName, fullName }
            logs/{auto_id}: { logDateString, logType, value, ... }
            importBatches/{batch_id}: { batchId, totalRows, totals, ... }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _reader_ref(self, reader_id: str) -> firestore.DocumentReference:
        """Get reference to reader profile document."""
        return self.client.collection("readers").document(reader_id)

    def _logs_ref(self, reader_id: str) -> firestore.CollectionReference:
        """Get reference to a reader's logs collection."""
        return self._reader_ref(reader_id).collection("logs")

    def _batches_ref(self, reader_id: str) -> firestore.CollectionReference:
        """Get reference to a reader's import batch collection."""
        return self._reader_ref(reader_id).collection("importBatches")

    # ==================== Reader Profiles ====================

    def get_reader(self, reader_id: str) -> tuple[ReaderProfile | None, list[DataIssue]]:
        """Fetch a reader profile.

        Returns:
            Tuple of (profile, issues); the profile is None when the document
            is absent or fails validation, in which case issues says why
        """
        logger.debug("Fetching reader profile: %s", reader_id)
        try:
            doc = self._reader_ref(reader_id).get()
        except Exception as e:
            logger.error("Failed to fetch reader %s: %s", reader_id, str(e))
            raise StoreError(f"Failed to fetch reader {reader_id}") from e

        if not doc.exists:
            return None, []
        profiles, issues = validate_documents(
            ReaderProfile, [{"readerId": reader_id, **doc.to_dict(), "id": reader_id}]
        )
        return (profiles[0] if profiles else None), issues

    def save_reader(self, profile: ReaderProfile) -> None:
        """Create or merge a reader profile."""
        logger.info("Saving reader profile: %s", profile.reader_id)
        data = profile.model_dump(by_alias=True, exclude_none=True)
        data["updatedAt"] = firestore.SERVER_TIMESTAMP
        try:
            self._reader_ref(profile.reader_id).set(data, merge=True)
        except Exception as e:
            logger.error("Failed to save reader %s: %s", profile.reader_id, str(e))
            raise StoreError(f"Failed to save reader {profile.reader_id}") from e

    # ==================== Log Operations ====================

    def list_log_documents(self, reader_id: str) -> list[dict[str, Any]]:
        """Read every log document for a reader, with its id under "id"."""
        logger.debug("Fetching all logs for reader: %s", reader_id)
        try:
            documents = [{**doc.to_dict(), "id": doc.id} for doc in self._logs_ref(reader_id).stream()]
        except Exception as e:
            logger.error("Failed to fetch logs for %s: %s", reader_id, str(e))
            raise StoreError(f"Failed to fetch logs for {reader_id}") from e

        logger.debug("Found %d log documents", len(documents))
        return documents

    def get_logs(self, reader_id: str) -> tuple[list[LogEntry], list[DataIssue]]:
        """Read and validate every log entry for a reader.

        Returns:
            Tuple of (valid entries, documents that failed validation)
        """
        entries, issues = entries_from_documents(self.list_log_documents(reader_id))
        if issues:
            logger.warning("%d log documents for %s failed validation", len(issues), reader_id)
        return entries, issues

    def add_log(self, entry: LogEntry, created_by: str) -> str:
        """Add one log entry with a generated id.

        Returns:
            The new document id
        """
        logger.info("Adding %s log for %s on %s", entry.log_type.value, entry.reader_id, entry.log_date_string)
        data = self._log_document(entry, created_by)
        try:
            _, doc_ref = self._logs_ref(entry.reader_id).add(data)
        except Exception as e:
            logger.error("Failed to add log for %s: %s", entry.reader_id, str(e))
            raise StoreError(f"Failed to add log for {entry.reader_id}") from e
        return doc_ref.id

    def commit_logs(self, reader_id: str, entries: list[LogEntry], created_by: str) -> int:
        """Write a group of entries in one atomic batch.

        Args:
            reader_id: Reader owning every entry
            entries: At most FIRESTORE_BATCH_LIMIT entries
            created_by: Writer tag stored on each document

        Returns:
            Number of documents written
        """
        if len(entries) > FIRESTORE_BATCH_LIMIT:
            raise ValueError(f"Batch of {len(entries)} exceeds limit of {FIRESTORE_BATCH_LIMIT}")
        if not entries:
            return 0

        batch = self.client.batch()
        logs_ref = self._logs_ref(reader_id)
        for entry in entries:
            batch.set(logs_ref.document(), self._log_document(entry, created_by))

        try:
            batch.commit()
        except Exception as e:
            logger.error("Failed to commit %d logs for %s: %s", len(entries), reader_id, str(e))
            raise StoreError(f"Failed to commit logs for {reader_id}") from e

        logger.info("Committed batch of %d logs for %s", len(entries), reader_id)
        return len(entries)

    def _log_document(self, entry: LogEntry, created_by: str) -> dict[str, Any]:
        data = entry.to_document()
        data.update({
            "createdAt": firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
            "createdBy": created_by,
            "updatedBy": created_by,
        })
        return data

    def _delete_all(self, collection: firestore.CollectionReference, batch_limit: int) -> int:
        deleted = 0
        batch = self.client.batch()
        pending = 0

        for doc in collection.stream():
            batch.delete(doc.reference)
            pending += 1
            if pending >= batch_limit:
                batch.commit()
                deleted += pending
                logger.info("Deleted %d documents so far", deleted)
                batch = self.client.batch()
                pending = 0

        if pending:
            batch.commit()
            deleted += pending
        return deleted

    def delete_all_logs(self, reader_id: str, batch_limit: int = FIRESTORE_BATCH_LIMIT) -> int:
        """Delete every log entry for a reader.

        Returns:
            Number of documents deleted
        """
        logger.info("Deleting all logs for reader: %s", reader_id)
        try:
            return self._delete_all(self._logs_ref(reader_id), batch_limit)
        except Exception as e:
            logger.error("Failed to delete logs for %s: %s", reader_id, str(e))
            raise StoreError(f"Failed to delete logs for {reader_id}") from e

    # ==================== Import Batches ====================

    def save_import_batch(self, batch: ImportBatch, created_by: str) -> None:
        """Persist batch metadata under its explicit id."""
        logger.info("Saving import batch %s for %s", batch.batch_id, batch.reader_id)
        data = batch.to_document()
        data.update({
            "processedAt": firestore.SERVER_TIMESTAMP,
            "createdAt": firestore.SERVER_TIMESTAMP,
            "createdBy": created_by,
        })
        try:
            self._batches_ref(batch.reader_id).document(batch.batch_id).set(data)
        except Exception as e:
            logger.error("Failed to save import batch %s: %s", batch.batch_id, str(e))
            raise StoreError(f"Failed to save import batch {batch.batch_id}") from e

    def list_import_batches(self, reader_id: str) -> tuple[list[ImportBatch], list[DataIssue]]:
        """Read and validate every import batch for a reader.

        Returns:
            Tuple of (valid batches, documents that failed validation)
        """
        logger.debug("Fetching import batches for reader: %s", reader_id)
        try:
            documents = [{**doc.to_dict(), "id": doc.id} for doc in self._batches_ref(reader_id).stream()]
        except Exception as e:
            logger.error("Failed to fetch import batches for %s: %s", reader_id, str(e))
            raise StoreError(f"Failed to fetch import batches for {reader_id}") from e

        batches, issues = batches_from_documents(documents)
        if issues:
            logger.warning("%d import batch documents for %s failed validation", len(issues), reader_id)
        return batches, issues

    def delete_import_batches(self, reader_id: str, batch_limit: int = FIRESTORE_BATCH_LIMIT) -> int:
        """Delete every import batch document for a reader."""
        logger.info("Deleting import batches for reader: %s", reader_id)
        try:
            return self._delete_all(self._batches_ref(reader_id), batch_limit)
        except Exception as e:
            logger.error("Failed to delete import batches for %s: %s", reader_id, str(e))
            raise StoreError(f"Failed to delete import batches for {reader_id}") from e

