"""
File Lifecycle State Machine

Drives files (and folders) through Active -> Recycled -> {Active | Purged}.
Implements:
- Upload confirmation: first version or same-name new version
- Soft delete into the recycle bin with a retention window
- Restore from the recycle bin with usage re-added
- Permanent purge of metadata and blobs
- Restore of a historical version as a new version

Metadata and blob store fail independently. Destructive blob calls (purge,
version eviction) run after the metadata commit, are best-effort and logged;
constructive ones (version copy) abort the operation.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from drivecore.core.config import settings
from drivecore.core.errors import (
    BlobStoreUnavailableError,
    ForbiddenError,
    NotFoundError,
)
from drivecore.db import transaction
from drivecore.metrics import (
    record_file_created,
    record_item_purged,
    record_item_recycled,
    record_item_restored,
)
from drivecore.models import (
    FileRecord,
    FolderRecord,
    RecycleEntry,
    RecycleItemType,
    new_id,
    utcnow,
)
from drivecore.storage.gateway import BlobStoreGateway
from drivecore.storage.naming import DuplicateNameResolver
from drivecore.storage.quota import StorageAccountant
from drivecore.storage.versions import VersionHistoryManager

logger = logging.getLogger(__name__)


def build_folder_path(db: Session, folder_id: Optional[str]) -> str:
    """
    Slash-joined folder names from the root down to ``folder_id``.

    Returns "/" for the root. Stops at a missing parent or a cycle.
    """
    names = []
    seen = set()
    current_id = folder_id
    while current_id and current_id not in seen:
        seen.add(current_id)
        folder = db.get(FolderRecord, current_id)
        if folder is None:
            break
        names.append(folder.name)
        current_id = folder.parent_id
    return "/" + "/".join(reversed(names))


class FileLifecycleManager:
    """
    Lifecycle transitions for files and folders

    Public methods run in their own transaction, except recycle_file,
    recycle_folder and purge_entry, which join the caller's transaction so
    cascades and sweeps can batch them.
    """

    def __init__(
        self,
        db: Session,
        gateway: BlobStoreGateway,
        clock: Callable[[], datetime] = utcnow,
        retention_days: Optional[int] = None,
        max_versions: Optional[int] = None,
        verify_uploads: Optional[bool] = None
    ):
        """
        Initialize lifecycle manager

        Args:
            db: Request-scoped database session
            gateway: Blob store gateway
            clock: Source of naive-UTC timestamps
            retention_days: Recycle bin retention (default: RECYCLE_RETENTION_DAYS)
            max_versions: Per-file version ceiling (default: MAX_VERSIONS_PER_FILE)
            verify_uploads: Stat the blob before recording an upload
        """
        self.db = db
        self.gateway = gateway
        self.clock = clock
        self.retention = timedelta(days=retention_days or settings.RECYCLE_RETENTION_DAYS)
        self.verify_uploads = settings.VERIFY_UPLOADS if verify_uploads is None else verify_uploads

        self.pending_deletes: List[str] = []

        self.accountant = StorageAccountant(db)
        self.resolver = DuplicateNameResolver(db)
        self.versions = VersionHistoryManager(
            db, gateway, max_versions=max_versions, clock=clock, pending_deletes=self.pending_deletes
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_file(self, file_id: str, lock: bool = False) -> FileRecord:
        """
        Load an active file

        Raises:
            NotFoundError: If the file is missing or soft-deleted
        """
        query = self.db.query(FileRecord).filter(
            FileRecord.id == file_id,
            FileRecord.is_deleted.is_(False),
        )
        if lock:
            query = query.with_for_update()
        file = query.one_or_none()
        if file is None:
            raise NotFoundError("File not found")
        return file

    def get_active_folder(self, folder_id: str, owner_id: str) -> FolderRecord:
        """
        Load an active folder owned by ``owner_id``

        Raises:
            NotFoundError: If the folder is missing, deleted or someone else's
        """
        folder = self.db.query(FolderRecord).filter(
            FolderRecord.id == folder_id,
            FolderRecord.owner_id == owner_id,
            FolderRecord.is_deleted.is_(False),
        ).one_or_none()
        if folder is None:
            raise NotFoundError("Folder not found")
        return folder

    def _find_active_by_name(
        self,
        owner_id: str,
        folder_id: Optional[str],
        name: str
    ) -> Optional[FileRecord]:
        query = self.db.query(FileRecord).filter(
            FileRecord.owner_id == owner_id,
            FileRecord.name == name,
            FileRecord.is_deleted.is_(False),
        )
        if folder_id is None:
            query = query.filter(FileRecord.folder_id.is_(None))
        else:
            query = query.filter(FileRecord.folder_id == folder_id)
        return query.with_for_update().one_or_none()

    def get_entry(self, entry_id: str, owner_id: str) -> RecycleEntry:
        """
        Load a recycle entry and check its owner

        Raises:
            NotFoundError: If no such entry exists
            ForbiddenError: If the entry belongs to someone else
        """
        entry = self.db.get(RecycleEntry, entry_id)
        if entry is None:
            raise NotFoundError("Item not found in recycle bin")
        if entry.owner_id != owner_id:
            raise ForbiddenError("Access denied to this recycle bin item")
        return entry

    @staticmethod
    def _require_owner(record: Union[FileRecord, FolderRecord], owner_id: str, kind: str = "file"):
        if record.owner_id != owner_id:
            raise ForbiddenError(f"Access denied to this {kind}")

    # ------------------------------------------------------------------
    # Upload confirmation
    # ------------------------------------------------------------------

    def create(
        self,
        owner_id: str,
        folder_id: Optional[str],
        blob_key: str,
        name: str,
        size: int,
        media_type: str,
        keep_both: bool = False
    ) -> FileRecord:
        """
        Record an upload whose blob is already in the object store

        A same-name upload into the same folder becomes a new version of the
        existing file unless ``keep_both`` is set, in which case the name is
        de-duplicated and a separate file is created.

        Args:
            owner_id: Uploader and owner
            folder_id: Target folder (None for the root)
            blob_key: Object key the bytes were uploaded to
            name: Display name
            size: Size in bytes (the stored size wins when uploads are verified)
            media_type: Media type
            keep_both: Keep the existing same-name file and store a renamed copy

        Returns:
            The created or updated FileRecord

        Raises:
            NotFoundError: If the folder or (with verification) the blob is missing
            QuotaExceededError: If the owner's ceiling would be exceeded
            NameResolutionExhaustedError: If no free name exists (keep_both)
        """
        if size < 0:
            raise ValueError("File size must be >= 0")
        if not name or not name.strip():
            raise ValueError("File name must not be empty")

        with self._committing():
            # Serializes confirmations per owner, including first uploads of a new name
            self.accountant.get_quota(owner_id, lock=True)

            if folder_id is not None:
                self.get_active_folder(folder_id, owner_id)

            if self.verify_uploads:
                stat = self.gateway.stat_object(blob_key)
                if stat.size != size:
                    logger.warning(
                        f"Upload '{name}' declared {size} bytes but blob '{blob_key}' "
                        f"holds {stat.size}; recording the stored size"
                    )
                    size = stat.size

            existing = None if keep_both else self._find_active_by_name(owner_id, folder_id, name)

            if existing is not None:
                delta = size - existing.size
                self.accountant.enforce_quota(owner_id, delta)
                self.versions.create_version(
                    existing, blob_key, name, size, media_type, uploader_id=owner_id
                )
                self.accountant.adjust_usage(owner_id, delta)
                logger.info(
                    f"Upload of '{name}' stored as version {existing.current_version} "
                    f"of file {existing.id}"
                )
                return existing

            final_name = self.resolver.resolve(owner_id, folder_id, name)
            self.accountant.enforce_quota(owner_id, size)

            now = self.clock()
            file = FileRecord(
                id=new_id(),
                owner_id=owner_id,
                folder_id=folder_id,
                blob_key=blob_key,
                name=final_name,
                size=size,
                media_type=media_type,
                current_version=1,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            )
            self.db.add(file)
            self.db.flush()

            self.versions.create_initial_version(file, uploader_id=owner_id)
            self.accountant.adjust_usage(owner_id, size)

        record_file_created()
        logger.info(f"Created file {file.id} '{final_name}' ({size} bytes) for owner {owner_id}")
        return file

    # ------------------------------------------------------------------
    # Active -> Recycled
    # ------------------------------------------------------------------

    def _new_entry(self, owner_id: str, deleted_by: str, **fields) -> RecycleEntry:
        now = self.clock()
        entry = RecycleEntry(
            id=new_id(),
            owner_id=owner_id,
            deleted_by=deleted_by,
            deleted_at=now,
            expires_at=now + self.retention,
            **fields
        )
        self.db.add(entry)
        return entry

    def recycle_file(self, file: FileRecord, deleted_by: str) -> RecycleEntry:
        folder_path = build_folder_path(self.db, file.folder_id)
        entry = self._new_entry(
            file.owner_id,
            deleted_by,
            file_id=file.id,
            item_type=RecycleItemType.FILE,
            item_name=file.name,
            size=file.size,
            original_path=folder_path.rstrip("/") + "/" + file.name,
        )

        file.is_deleted = True
        file.deleted_at = entry.deleted_at
        self.db.flush()
        self.accountant.adjust_usage(file.owner_id, -file.size)

        record_item_recycled(RecycleItemType.FILE.value)
        logger.info(f"File {file.id} moved to recycle bin (expires {entry.expires_at.isoformat()})")
        return entry

    def recycle_folder(self, folder: FolderRecord, deleted_by: str) -> RecycleEntry:
        entry = self._new_entry(
            folder.owner_id,
            deleted_by,
            folder_id=folder.id,
            item_type=RecycleItemType.FOLDER,
            item_name=folder.name,
            size=0,
            original_path=build_folder_path(self.db, folder.id),
        )

        folder.is_deleted = True
        folder.deleted_at = entry.deleted_at
        self.db.flush()

        record_item_recycled(RecycleItemType.FOLDER.value)
        logger.info(f"Folder {folder.id} moved to recycle bin")
        return entry

    def delete(self, file_id: str, owner_id: str) -> RecycleEntry:
        """
        Soft-delete a file into the recycle bin

        Raises:
            NotFoundError: If the file is missing or already recycled
            ForbiddenError: If ``owner_id`` does not own the file
        """
        with transaction(self.db):
            file = self.get_file(file_id, lock=True)
            self._require_owner(file, owner_id)
            entry = self.recycle_file(file, deleted_by=owner_id)
        return entry

    # ------------------------------------------------------------------
    # Recycled -> Active
    # ------------------------------------------------------------------

    def _restore_file(self, entry: RecycleEntry) -> FileRecord:
        file = self.db.query(FileRecord).filter(
            FileRecord.id == entry.file_id
        ).with_for_update().one_or_none()
        if file is None or not file.is_deleted:
            raise NotFoundError("Recycled file no longer exists")

        if file.folder_id is not None:
            folder = self.db.get(FolderRecord, file.folder_id)
            if folder is None or folder.is_deleted:
                logger.info(f"Parent folder of file {file.id} is not active; restoring to root")
                file.folder_id = None

        file.name = self.resolver.resolve(
            file.owner_id, file.folder_id, file.name, exclude_file_id=file.id
        )
        self.accountant.enforce_quota(file.owner_id, file.size)

        file.is_deleted = False
        file.deleted_at = None
        self.db.flush()
        self.accountant.adjust_usage(file.owner_id, file.size)
        return file

    def _restore_folder(self, entry: RecycleEntry) -> FolderRecord:
        folder = self.db.get(FolderRecord, entry.folder_id) if entry.folder_id else None
        if folder is None or not folder.is_deleted:
            raise NotFoundError("Recycled folder no longer exists")

        if folder.parent_id is not None:
            parent = self.db.get(FolderRecord, folder.parent_id)
            if parent is None or parent.is_deleted:
                logger.info(f"Parent of folder {folder.id} is not active; restoring to root")
                folder.parent_id = None

        folder.is_deleted = False
        folder.deleted_at = None
        self.db.flush()
        return folder

    def restore(self, entry_id: str, owner_id: str) -> Union[FileRecord, FolderRecord]:
        """
        Restore a recycled file or folder and drop its entry

        Raises:
            NotFoundError: If the entry or its item no longer exists
            ForbiddenError: If the entry belongs to someone else
            QuotaExceededError: If re-adding the file's bytes exceeds the ceiling
        """
        with transaction(self.db):
            entry = self.get_entry(entry_id, owner_id)
            item_type = entry.item_type
            if item_type == RecycleItemType.FILE:
                restored = self._restore_file(entry)
            else:
                restored = self._restore_folder(entry)
            self.db.delete(entry)

        record_item_restored(item_type.value)
        logger.info(f"Restored {item_type.value} {restored.id} from recycle bin entry {entry_id}")
        return restored

    # ------------------------------------------------------------------
    # Recycled -> Purged
    # ------------------------------------------------------------------

    def delete_pending_blobs(self) -> int:
        """
        Delete blobs queued by committed purges and evictions

        Failures are logged and leave an orphan blob behind.

        Returns:
            Number of blobs deleted
        """
        keys = list(self.pending_deletes)
        self.pending_deletes.clear()

        deleted = 0
        for key in keys:
            try:
                self.gateway.delete_object(key)
                deleted += 1
            except BlobStoreUnavailableError as e:
                logger.error(f"Failed to delete blob '{key}': {e.message}")
        return deleted

    def discard_pending_blobs(self):
        """Forget queued blob deletes after a rollback; their metadata survived."""
        if self.pending_deletes:
            logger.info(f"Rolled back; keeping {len(self.pending_deletes)} queued blobs")
        self.pending_deletes.clear()

    @contextmanager
    def _committing(self):
        try:
            with transaction(self.db):
                yield
        except Exception:
            self.discard_pending_blobs()
            raise
        self.delete_pending_blobs()

    def purge_entry(self, entry: RecycleEntry, reason: str = "manual") -> int:
        """
        Hard-delete the entry's item; returns the bytes released from the store.

        Blob keys are queued on ``pending_deletes`` for the caller to delete
        once its transaction commits.
        """
        freed = 0
        item_type = entry.item_type

        if item_type == RecycleItemType.FILE and entry.file_id:
            file = self.db.get(FileRecord, entry.file_id)
            if file is not None and not file.is_deleted:
                logger.warning(f"Recycle entry {entry.id} points at active file {file.id}; keeping file")
            elif file is not None:
                keys = [file.blob_key]
                for version in file.versions:
                    if version.blob_key not in keys:
                        keys.append(version.blob_key)
                self.pending_deletes.extend(keys)
                freed = file.size
                self.db.delete(file)

        elif item_type == RecycleItemType.FOLDER and entry.folder_id:
            folder = self.db.get(FolderRecord, entry.folder_id)
            if folder is not None:
                self.db.query(FileRecord).filter(
                    FileRecord.folder_id == folder.id
                ).update({FileRecord.folder_id: None}, synchronize_session="fetch")
                self.db.query(FolderRecord).filter(
                    FolderRecord.parent_id == folder.id
                ).update({FolderRecord.parent_id: None}, synchronize_session="fetch")
                self.db.delete(folder)

        self.db.delete(entry)
        self.db.flush()

        record_item_purged(item_type.value, reason)
        logger.info(f"Purged {item_type.value} '{entry.item_name}' (entry {entry.id}, reason={reason})")
        return freed

    def purge(self, entry_id: str, owner_id: str, reason: str = "manual") -> int:
        """
        Permanently delete a recycled item, its versions and its blobs

        Returns:
            Bytes released from the object store

        Raises:
            NotFoundError: If the entry does not exist
            ForbiddenError: If the entry belongs to someone else
        """
        with self._committing():
            entry = self.get_entry(entry_id, owner_id)
            freed = self.purge_entry(entry, reason=reason)
        return freed

    # ------------------------------------------------------------------
    # Active -> Active
    # ------------------------------------------------------------------

    def restore_version(self, file_id: str, version_id: str, owner_id: str) -> FileRecord:
        """
        Make a historical version current again as a brand-new version

        The version's blob is copied to a fresh key first; the new version
        goes through the usual eviction logic.

        Raises:
            NotFoundError: If the file or version does not exist
            ForbiddenError: If ``owner_id`` does not own the file
            QuotaExceededError: If the size growth exceeds the ceiling
            BlobStoreUnavailableError: If the copy fails; nothing is changed
        """
        with self._committing():
            file = self.get_file(file_id, lock=True)
            version = self.versions.get_version(file_id, version_id)
            self._require_owner(file, owner_id)

            name = self.resolver.resolve(
                file.owner_id, file.folder_id, version.name, exclude_file_id=file.id
            )
            delta = version.size - file.size
            self.accountant.enforce_quota(owner_id, delta)

            new_key = self.gateway.generate_key(version.name)
            try:
                self.gateway.copy_object(version.blob_key, new_key)
            except BlobStoreUnavailableError as e:
                logger.error(f"Failed to copy version {version_id} of file {file_id}: {e.message}")
                raise BlobStoreUnavailableError(
                    f"Failed to restore version {version.version_number}: "
                    f"the object store could not copy its contents",
                    key=version.blob_key
                ) from e

            source_number = version.version_number
            self.versions.create_version(
                file,
                new_key,
                name,
                version.size,
                version.media_type,
                uploader_id=owner_id,
                source="restore"
            )
            self.accountant.adjust_usage(owner_id, delta)

        logger.info(
            f"Version {source_number} restored for file {file_id} as version {file.current_version}"
        )
        return file
