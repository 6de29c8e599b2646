"""
SQLAlchemy models for the drivecore metadata store.
"""
from drivecore.models.base import Base, new_id, utcnow
from drivecore.models.file import FileRecord
from drivecore.models.version import VersionRecord
from drivecore.models.folder import FolderRecord
from drivecore.models.recycle import RecycleEntry, RecycleItemType
from drivecore.models.quota import UserQuota

__all__ = [
    "Base",
    "new_id",
    "utcnow",
    "FileRecord",
    "VersionRecord",
    "FolderRecord",
    "RecycleEntry",
    "RecycleItemType",
    "UserQuota",
]
