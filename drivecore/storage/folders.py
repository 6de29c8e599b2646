"""
Folder operations and the recursive soft-delete cascade.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from drivecore.core.errors import ForbiddenError, NotFoundError
from drivecore.db import transaction
from drivecore.models import FileRecord, FolderRecord, RecycleEntry, new_id, utcnow
from drivecore.storage.gateway import BlobStoreGateway
from drivecore.storage.lifecycle import FileLifecycleManager, build_folder_path

logger = logging.getLogger(__name__)


class FolderService:
    """Folder tree management for one owner at a time."""

    def __init__(
        self,
        db: Session,
        gateway: BlobStoreGateway,
        clock: Callable[[], datetime] = utcnow,
        lifecycle: Optional[FileLifecycleManager] = None
    ):
        self.db = db
        self.clock = clock
        self.lifecycle = lifecycle or FileLifecycleManager(db, gateway, clock=clock)

    def get_folder(self, folder_id: str, owner_id: str) -> FolderRecord:
        """
        Load an active folder

        Raises:
            NotFoundError: If the folder is missing or recycled
            ForbiddenError: If ``owner_id`` does not own it
        """
        folder = self.db.query(FolderRecord).filter(
            FolderRecord.id == folder_id,
            FolderRecord.is_deleted.is_(False),
        ).one_or_none()
        if folder is None:
            raise NotFoundError("Folder not found")
        if folder.owner_id != owner_id:
            raise ForbiddenError("Access denied to this folder")
        return folder

    def create_folder(self, owner_id: str, name: str, parent_id: Optional[str] = None) -> FolderRecord:
        """Create a folder at the root or under an active parent."""
        if not name or not name.strip():
            raise ValueError("Folder name must not be empty")

        with transaction(self.db):
            if parent_id is not None:
                try:
                    self.get_folder(parent_id, owner_id)
                except NotFoundError:
                    raise NotFoundError("Parent folder not found")

            now = self.clock()
            folder = FolderRecord(
                id=new_id(),
                owner_id=owner_id,
                name=name,
                parent_id=parent_id,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            )
            self.db.add(folder)

        logger.info(f"Created folder {folder.id} '{name}' for owner {owner_id}")
        return folder

    def get_folder_path(self, folder_id: str) -> str:
        """Slash-joined path of a folder from the root, e.g. ``/Projects/2026``."""
        if self.db.get(FolderRecord, folder_id) is None:
            raise NotFoundError("Folder not found")
        return build_folder_path(self.db, folder_id)

    def move_file(self, file_id: str, folder_id: Optional[str], owner_id: str) -> FileRecord:
        """
        Move an active file to another folder (None for the root)

        A name already used in the target folder is de-duplicated.
        """
        with transaction(self.db):
            file = self.lifecycle.get_file(file_id, lock=True)
            if file.owner_id != owner_id:
                raise ForbiddenError("Access denied to this file")
            if folder_id is not None:
                self.get_folder(folder_id, owner_id)

            file.name = self.lifecycle.resolver.resolve(
                owner_id, folder_id, file.name, exclude_file_id=file.id
            )
            file.folder_id = folder_id
            file.updated_at = self.clock()

        logger.info(f"Moved file {file_id} to folder {folder_id}")
        return file

    def _collect_subtree(self, root: FolderRecord) -> List[FolderRecord]:
        """Active folders of the subtree in depth-first pre-order."""
        ordered = []
        seen = set()
        stack = [root]
        while stack:
            folder = stack.pop()
            if folder.id in seen:
                continue
            seen.add(folder.id)
            ordered.append(folder)

            children = self.db.query(FolderRecord).filter(
                FolderRecord.parent_id == folder.id,
                FolderRecord.is_deleted.is_(False),
            ).order_by(FolderRecord.name.desc()).all()
            stack.extend(children)
        return ordered

    def delete_folder(self, folder_id: str, owner_id: str) -> RecycleEntry:
        """
        Soft-delete a folder and everything below it

        Every contained file goes through its own lifecycle transition and
        usage credit; every folder gets its own recycle entry. Descendants
        are recycled before their parents, the target folder last.

        Returns:
            The target folder's RecycleEntry
        """
        with transaction(self.db):
            root = self.get_folder(folder_id, owner_id)
            subtree = self._collect_subtree(root)

            files_recycled = 0
            entry = None
            for folder in reversed(subtree):
                files = self.db.query(FileRecord).filter(
                    FileRecord.folder_id == folder.id,
                    FileRecord.is_deleted.is_(False),
                ).with_for_update().all()
                for file in files:
                    self.lifecycle.recycle_file(file, deleted_by=owner_id)
                    files_recycled += 1
                entry = self.lifecycle.recycle_folder(folder, deleted_by=owner_id)

        logger.info(
            f"Deleted folder {folder_id}: {len(subtree)} folders, {files_recycled} files recycled"
        )
        return entry
