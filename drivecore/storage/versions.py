"""
Version History Manager

Maintains the ordered, bounded version list of each file.
Implements:
- Monotonic version numbers (never reused after eviction)
- Oldest-first eviction at the per-file ceiling
- Blob cleanup for evicted versions, deferred until after commit
- Mirroring of the newest version onto the file's live fields
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from drivecore.core.config import settings
from drivecore.core.errors import NotFoundError
from drivecore.metrics import record_version_created, record_version_evicted
from drivecore.models import FileRecord, VersionRecord, utcnow
from drivecore.storage.gateway import BlobStoreGateway

logger = logging.getLogger(__name__)


class VersionHistoryManager:
    """
    Per-file version history

    Callers hold the file's row lock while creating versions, so numbering
    and eviction cannot interleave for the same file.
    """

    def __init__(
        self,
        db: Session,
        gateway: BlobStoreGateway,
        max_versions: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
        pending_deletes: Optional[List[str]] = None
    ):
        """
        Initialize version history manager

        Args:
            db: Request-scoped database session
            gateway: Blob store for evicted-version cleanup
            max_versions: Surviving-version ceiling (default: MAX_VERSIONS_PER_FILE)
            clock: Source of naive-UTC timestamps
            pending_deletes: Shared list collecting blob keys to delete once
                the metadata transaction has committed
        """
        self.db = db
        self.gateway = gateway
        self.max_versions = max_versions or settings.MAX_VERSIONS_PER_FILE
        self.clock = clock
        self.pending_deletes = [] if pending_deletes is None else pending_deletes

    def get_versions(self, file_id: str) -> List[VersionRecord]:
        """Surviving versions of a file, newest first."""
        return (
            self.db.query(VersionRecord)
            .filter(VersionRecord.file_id == file_id)
            .order_by(VersionRecord.uploaded_at.desc(), VersionRecord.version_number.desc())
            .all()
        )

    def get_version(self, file_id: str, version_id: str) -> VersionRecord:
        """
        Load one version of a file

        Raises:
            NotFoundError: If the version does not belong to the file
        """
        version = (
            self.db.query(VersionRecord)
            .filter(VersionRecord.id == version_id, VersionRecord.file_id == file_id)
            .one_or_none()
        )
        if version is None:
            raise NotFoundError("Version not found")
        return version

    def count_versions(self, file_id: str) -> int:
        return self.db.query(VersionRecord).filter(VersionRecord.file_id == file_id).count()

    def _evict_oldest(self, file: FileRecord, incoming_key: str) -> VersionRecord:
        oldest = (
            self.db.query(VersionRecord)
            .filter(VersionRecord.file_id == file.id)
            .order_by(VersionRecord.uploaded_at.asc(), VersionRecord.version_number.asc())
            .first()
        )

        # delete-orphan removes the row and keeps the loaded collection coherent
        file.versions.remove(oldest)
        self.db.flush()
        record_version_evicted()

        # Blob goes only after the eviction commits
        if oldest.blob_key != incoming_key:
            self.pending_deletes.append(oldest.blob_key)

        logger.info(f"Evicted version {oldest.version_number} of file {file.id}")
        return oldest

    def create_version(
        self,
        file: FileRecord,
        blob_key: str,
        name: str,
        size: int,
        media_type: str,
        uploader_id: Optional[str],
        source: str = "upload"
    ) -> VersionRecord:
        """
        Append a version and make it the file's current state

        Args:
            file: Locked, persisted file record
            blob_key: Object key holding this version's bytes
            name: Name snapshot
            size: Size snapshot in bytes
            media_type: Media type snapshot
            uploader_id: Who uploaded or restored the bytes
            source: Metrics label ('upload' or 'restore')

        Returns:
            The new VersionRecord
        """
        self.db.flush()
        existing = self.count_versions(file.id)
        while existing >= self.max_versions:
            self._evict_oldest(file, blob_key)
            existing -= 1

        next_number = file.current_version + 1

        version = VersionRecord(
            file_id=file.id,
            version_number=next_number,
            blob_key=blob_key,
            name=name,
            size=size,
            media_type=media_type,
            uploaded_by=uploader_id,
            uploaded_at=self.clock(),
        )
        file.versions.append(version)

        file.current_version = next_number
        file.name = name
        file.size = size
        file.blob_key = blob_key
        file.media_type = media_type
        file.updated_at = self.clock()
        self.db.flush()

        record_version_created(source)
        logger.info(f"Created version {next_number} of file {file.id} ({size} bytes)")
        return version

    def create_initial_version(self, file: FileRecord, uploader_id: Optional[str]) -> VersionRecord:
        """
        Record version 1 as a snapshot of a freshly created file's live fields
        """
        version = VersionRecord(
            file_id=file.id,
            version_number=1,
            blob_key=file.blob_key,
            name=file.name,
            size=file.size,
            media_type=file.media_type,
            uploaded_by=uploader_id,
            uploaded_at=self.clock(),
        )
        file.current_version = 1
        file.versions.append(version)
        self.db.flush()

        record_version_created("upload")
        return version
