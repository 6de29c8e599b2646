"""
Pydantic schemas for serializing drive records and reports.
"""
from drivecore.schemas.file import (
    FileRecordOut,
    VersionRecordOut,
    FilePage,
    UploadTicket,
    TransferURL,
)
from drivecore.schemas.folder import FolderOut
from drivecore.schemas.recycle import RecycleEntryOut, CleanupReport
from drivecore.schemas.quota import UsageReport

__all__ = [
    # File schemas
    "FileRecordOut",
    "VersionRecordOut",
    "FilePage",
    "UploadTicket",
    "TransferURL",
    # Folder schemas
    "FolderOut",
    # Recycle bin schemas
    "RecycleEntryOut",
    "CleanupReport",
    # Quota schemas
    "UsageReport",
]
