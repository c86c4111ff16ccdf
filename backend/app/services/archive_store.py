"""
Archive of exported sessions.

Archives are write-once: archiving the same session again creates a new
entry. Any backend failure is raised as ArchiveStoreError so callers can tell
"computed but not saved" apart from export failures.
"""
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from arango.exceptions import ArangoError
from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.core.errors import ArchiveStoreError
from backend.app.models.archive import ArchiveFiles, ArchiveRecord, archive_document
from backend.app.models.export import ExportData

logger = logging.getLogger(__name__)


def new_archive(export_data: ExportData, archived_at: Optional[datetime] = None) -> ArchiveRecord:
    archived_at = archived_at or datetime.now(timezone.utc)
    return ArchiveRecord(
        id=uuid.uuid4().hex,
        sessionId=export_data.session_id,
        userId=export_data.user_id,
        archivedAt=archived_at,
        exportData=export_data,
        files=ArchiveFiles.for_user(export_data.user_id, archived_at),
    )


class ArchiveStore(ABC):

    @abstractmethod
    async def put(self, export_data: ExportData) -> str:
        """Stores a new archive and returns its id."""

    @abstractmethod
    async def get(self, archive_id: str) -> Optional[ArchiveRecord]:
        """Returns the archive, or None if there is no such id."""

    @abstractmethod
    async def list(self) -> List[ArchiveRecord]:
        """All archives, newest first."""


class ArangoArchiveStore(ArchiveStore):
    COLLECTION = "Archives"

    def __init__(self, database=None):
        self._database = database

    @property
    def db(self):
        if self._database is None:
            from backend.app.db.arango import db
            self._database = db.get_db()
        return self._database

    @staticmethod
    def _to_record(doc) -> ArchiveRecord:
        doc = {k: v for k, v in doc.items() if not k.startswith("_")}
        return ArchiveRecord.model_validate(doc)

    async def put(self, export_data: ExportData) -> str:
        record = new_archive(export_data)
        doc = archive_document(record)
        doc["_key"] = record.id
        try:
            self.db.collection(self.COLLECTION).insert(doc)
        except ArangoError as e:
            raise ArchiveStoreError(f"Failed to archive session {record.session_id}: {e}") from e
        logger.info("Archived session %s for %s as %s", record.session_id, record.user_id, record.id)
        return record.id

    async def get(self, archive_id: str) -> Optional[ArchiveRecord]:
        if not archive_id.isalnum():
            return None
        try:
            doc = self.db.collection(self.COLLECTION).get(archive_id)
        except ArangoError as e:
            raise ArchiveStoreError(f"Failed to read archive {archive_id}: {e}") from e
        if doc is None:
            return None
        return self._to_record(doc)

    async def list(self) -> List[ArchiveRecord]:
        aql = """
        FOR doc IN Archives
            SORT doc.archivedAt DESC
            RETURN doc
        """
        try:
            cursor = self.db.aql.execute(aql)
            return [self._to_record(doc) for doc in cursor]
        except ArangoError as e:
            raise ArchiveStoreError(f"Failed to list archives: {e}") from e


class FileArchiveStore(ArchiveStore):
    """One JSON document per archive under <root>/archives."""

    def __init__(self, root: str):
        self.path = Path(root) / "archives"

    def _file(self, archive_id: str) -> Path:
        return self.path / f"{archive_id}.json"

    def _read(self, file: Path) -> ArchiveRecord:
        try:
            return ArchiveRecord.model_validate_json(file.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise ArchiveStoreError(f"Failed to read archive {file.name}: {e}") from e

    async def put(self, export_data: ExportData) -> str:
        record = new_archive(export_data)
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            with open(self._file(record.id), "x", encoding="utf-8") as f:
                json.dump(archive_document(record), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise ArchiveStoreError(f"Failed to archive session {record.session_id}: {e}") from e
        logger.info("Archived session %s for %s to %s", record.session_id, record.user_id, self._file(record.id))
        return record.id

    async def get(self, archive_id: str) -> Optional[ArchiveRecord]:
        # Ids are generated hex strings; anything else cannot name an archive.
        if not archive_id.isalnum():
            return None
        file = self._file(archive_id)
        if not file.exists():
            return None
        return self._read(file)

    async def list(self) -> List[ArchiveRecord]:
        if not self.path.exists():
            return []
        records = [self._read(file) for file in self.path.glob("*.json")]
        return sorted(records, key=lambda r: r.archived_at, reverse=True)


def get_archive_store() -> ArchiveStore:
    if settings.STORAGE_BACKEND == "file":
        return FileArchiveStore(settings.DATA_DIR)
    return ArangoArchiveStore()
