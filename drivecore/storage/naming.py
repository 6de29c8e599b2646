"""
Duplicate name resolution within a folder scope.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from drivecore.core.config import settings
from drivecore.core.errors import NameResolutionExhaustedError
from drivecore.models import FileRecord

logger = logging.getLogger(__name__)


def split_name(name: str) -> Tuple[str, str]:
    """
    Split a display name into base and extension.

    The extension starts at the final dot; a name whose only dot is the
    leading one (``.env``) has no extension.

    >>> split_name("report.final.pdf")
    ('report.final', '.pdf')
    >>> split_name("README")
    ('README', '')
    """
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot:]


class DuplicateNameResolver:
    """Derive ``base (n)extension`` names that are free among active files."""

    def __init__(self, db: Session, max_attempts: Optional[int] = None):
        self.db = db
        self.max_attempts = max_attempts or settings.MAX_NAME_ATTEMPTS

    def is_taken(
        self,
        owner_id: str,
        folder_id: Optional[str],
        name: str,
        exclude_file_id: Optional[str] = None
    ) -> bool:
        """Check whether an active file already uses ``name`` in scope."""
        query = self.db.query(FileRecord.id).filter(
            FileRecord.owner_id == owner_id,
            FileRecord.name == name,
            FileRecord.is_deleted.is_(False),
        )
        if folder_id is None:
            query = query.filter(FileRecord.folder_id.is_(None))
        else:
            query = query.filter(FileRecord.folder_id == folder_id)
        if exclude_file_id is not None:
            query = query.filter(FileRecord.id != exclude_file_id)
        return query.first() is not None

    def resolve(
        self,
        owner_id: str,
        folder_id: Optional[str],
        candidate_name: str,
        exclude_file_id: Optional[str] = None
    ) -> str:
        """
        Return a name that no active file in the folder scope uses.

        Args:
            owner_id: Owner of the scope
            folder_id: Folder scope (None for the root)
            candidate_name: Desired display name
            exclude_file_id: File whose own name does not count as a collision

        Returns:
            ``candidate_name`` if free, else the first free ``base (n)ext``

        Raises:
            NameResolutionExhaustedError: If ``(1)`` through ``(max_attempts - 1)`` are all taken
        """
        self.db.flush()
        if not self.is_taken(owner_id, folder_id, candidate_name, exclude_file_id):
            return candidate_name

        base, extension = split_name(candidate_name)
        for counter in range(1, self.max_attempts):
            new_name = f"{base} ({counter}){extension}"
            if not self.is_taken(owner_id, folder_id, new_name, exclude_file_id):
                logger.info(f"Generated unique filename: {new_name} for original: {candidate_name}")
                return new_name

        logger.error(
            f"Name resolution exhausted for '{candidate_name}' in folder {folder_id} "
            f"after {self.max_attempts - 1} attempts"
        )
        raise NameResolutionExhaustedError(
            f"Could not find a free name for '{candidate_name}' "
            f"after {self.max_attempts - 1} attempts"
        )
