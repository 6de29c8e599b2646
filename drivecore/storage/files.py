"""
File Query Service

Read-side operations over active files and presigned transfer URLs.
Implements:
- Paginated newest-first listing per folder
- Case-insensitive search on name or media type
- Version history lookup
- Upload tickets and download URLs for current and historical versions
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from drivecore.core.errors import ForbiddenError, NotFoundError
from drivecore.models import FileRecord, VersionRecord
from drivecore.schemas import UploadTicket
from drivecore.storage.gateway import BlobStoreGateway, PresignedURL
from drivecore.storage.versions import VersionHistoryManager

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class Page:
    """
    One page of query results
    """
    total: int
    page: int
    page_size: int
    items: List[FileRecord] = field(default_factory=list)

    @property
    def pages(self) -> int:
        """Total number of pages"""
        if self.total == 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def _check_paging(page: int, page_size: int):
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")


class FileService:
    """
    File lookups for one request

    Features:
    - Soft-deleted files never appear in listings or lookups
    - Ownership checks before handing out URLs
    """

    def __init__(
        self,
        db: Session,
        gateway: BlobStoreGateway,
        versions: Optional[VersionHistoryManager] = None
    ):
        self.db = db
        self.gateway = gateway
        self.versions = versions or VersionHistoryManager(db, gateway)

    def get_file(self, file_id: str) -> FileRecord:
        """
        Load an active file

        Raises:
            NotFoundError: If the file is missing or soft-deleted
        """
        file = self.db.query(FileRecord).filter(
            FileRecord.id == file_id,
            FileRecord.is_deleted.is_(False),
        ).one_or_none()
        if file is None:
            raise NotFoundError("File not found")
        return file

    def verify_ownership(self, file_id: str, owner_id: str) -> FileRecord:
        """
        Load an active file and check it belongs to ``owner_id``

        Raises:
            NotFoundError: If the file is missing or soft-deleted
            ForbiddenError: If someone else owns it
        """
        file = self.get_file(file_id)
        if file.owner_id != owner_id:
            raise ForbiddenError("Access denied to this file")
        return file

    def list_by_owner(
        self,
        owner_id: str,
        folder_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Page:
        """
        List an owner's active files in one folder, newest first

        Args:
            owner_id: Owner ID
            folder_id: Folder to list (None lists the root)
            page: 1-based page number
            page_size: Items per page (max 100)
        """
        _check_paging(page, page_size)

        query = self.db.query(FileRecord).filter(
            FileRecord.owner_id == owner_id,
            FileRecord.is_deleted.is_(False),
        )
        if folder_id is None:
            query = query.filter(FileRecord.folder_id.is_(None))
        else:
            query = query.filter(FileRecord.folder_id == folder_id)

        return self._paginate(query, page, page_size)

    def search(
        self,
        owner_id: str,
        query: str,
        folder_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Page:
        """
        Case-insensitive substring search on name or media type

        Args:
            owner_id: Owner ID
            query: Search text
            folder_id: Restrict to one folder (None searches every folder)
            page: 1-based page number
            page_size: Items per page (max 100)
        """
        _check_paging(page, page_size)

        pattern = f"%{query.strip()}%"
        q = self.db.query(FileRecord).filter(
            FileRecord.owner_id == owner_id,
            FileRecord.is_deleted.is_(False),
            or_(FileRecord.name.ilike(pattern), FileRecord.media_type.ilike(pattern)),
        )
        if folder_id is not None:
            q = q.filter(FileRecord.folder_id == folder_id)

        result = self._paginate(q, page, page_size)
        logger.debug(f"Search '{query}' for owner {owner_id}: {result.total} matches")
        return result

    def _paginate(self, query, page: int, page_size: int) -> Page:
        total = query.count()
        items = (
            query.order_by(FileRecord.created_at.desc(), FileRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return Page(total=total, page=page, page_size=page_size, items=items)

    def get_versions(self, file_id: str) -> List[VersionRecord]:
        """Surviving versions of an active file, newest first."""
        self.get_file(file_id)
        return self.versions.get_versions(file_id)

    def issue_upload_url(self, filename: str, owner_id: str) -> UploadTicket:
        """
        Generate an object key and a presigned PUT URL for it

        The client uploads the bytes directly and then confirms with the key.
        """
        key = self.gateway.generate_key(filename)
        presigned = self.gateway.issue_upload_url(key)
        logger.info(f"Issued upload ticket '{key}' to owner {owner_id}")
        return UploadTicket(
            key=key,
            url=presigned.url,
            expires_in=presigned.expires_in_seconds,
            expires_at=presigned.expires_at,
        )

    def issue_download_url(self, file_id: str, owner_id: str) -> PresignedURL:
        """Presigned GET URL for the current version of an owned file."""
        file = self.verify_ownership(file_id, owner_id)
        return self.gateway.issue_download_url(file.blob_key, filename=file.name)

    def issue_version_download_url(self, file_id: str, version_id: str, owner_id: str) -> PresignedURL:
        """Presigned GET URL for one historical version of an owned file."""
        self.verify_ownership(file_id, owner_id)
        version = self.versions.get_version(file_id, version_id)
        return self.gateway.issue_download_url(version.blob_key, filename=version.name)
