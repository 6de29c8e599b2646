"""
Storage Lifecycle Module

File lifecycle engine over a metadata database and a MinIO blob store:
- Blob store gateway (presigned URLs, copy, delete, stat)
- Per-owner quota accounting and enforcement
- Duplicate name resolution within a folder
- Bounded per-file version history
- Active -> Recycled -> Purged lifecycle state machine
- Recycle bin listing, restore, purge and expiry sweep
- Folder cascade and file queries
"""

from .gateway import BlobStoreGateway, BlobStat, PresignedURL
from .quota import StorageAccountant, QuotaCheck
from .naming import DuplicateNameResolver, split_name
from .versions import VersionHistoryManager
from .lifecycle import FileLifecycleManager, build_folder_path
from .recycle import RecycleBinService, CleanupResult
from .folders import FolderService
from .files import FileService, Page

__all__ = [
    # Blob store
    'BlobStoreGateway',
    'BlobStat',
    'PresignedURL',

    # Quota accounting
    'StorageAccountant',
    'QuotaCheck',

    # Naming
    'DuplicateNameResolver',
    'split_name',

    # Versions
    'VersionHistoryManager',

    # Lifecycle
    'FileLifecycleManager',
    'build_folder_path',

    # Recycle bin
    'RecycleBinService',
    'CleanupResult',

    # Folders and queries
    'FolderService',
    'FileService',
    'Page',
]
