"""
Recycle Bin Service

Recycle-entry facing operations, each delegating its transition to the
lifecycle manager.
Implements:
- Listing an owner's recycle bin
- Restore and permanent delete of single entries
- Emptying an owner's recycle bin
- Expiry sweep for entries past their retention window
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from drivecore.models import FileRecord, FolderRecord, RecycleEntry, utcnow
from drivecore.storage.gateway import BlobStoreGateway
from drivecore.storage.lifecycle import FileLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """
    Purge run result
    """
    reason: str
    items_scanned: int = 0
    items_purged: int = 0
    space_freed_bytes: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def space_freed_mb(self) -> float:
        """Get freed space in MB"""
        return self.space_freed_bytes / (1024 ** 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'reason': self.reason,
            'items_scanned': self.items_scanned,
            'items_purged': self.items_purged,
            'space_freed_bytes': self.space_freed_bytes,
            'space_freed_mb': round(self.space_freed_mb, 2),
            'errors': self.errors,
            'duration_seconds': round(self.duration_seconds, 2)
        }


class RecycleBinService:
    """
    Recycle bin operations

    Features:
    - Newest-deleted-first listing
    - Per-item transactions during bulk purges, so one failure does not
      undo the rest
    - Expiry sweep meant to be triggered by an external scheduler
    """

    def __init__(
        self,
        db: Session,
        gateway: BlobStoreGateway,
        clock: Callable[[], datetime] = utcnow,
        lifecycle: Optional[FileLifecycleManager] = None
    ):
        """
        Initialize recycle bin service

        Args:
            db: Database session
            gateway: Blob store gateway
            clock: Source of naive-UTC timestamps
            lifecycle: Lifecycle manager sharing the same session
        """
        self.db = db
        self.clock = clock
        self.lifecycle = lifecycle or FileLifecycleManager(db, gateway, clock=clock)

    def list_recycle_items(self, owner_id: str) -> List[RecycleEntry]:
        """Owner's recycle bin, most recently deleted first."""
        return (
            self.db.query(RecycleEntry)
            .filter(RecycleEntry.owner_id == owner_id)
            .order_by(RecycleEntry.deleted_at.desc())
            .all()
        )

    def restore_item(self, entry_id: str, owner_id: str) -> Union[FileRecord, FolderRecord]:
        """Restore one entry; see FileLifecycleManager.restore."""
        return self.lifecycle.restore(entry_id, owner_id)

    def delete_item_permanently(self, entry_id: str, owner_id: str) -> int:
        """Purge one entry; see FileLifecycleManager.purge."""
        return self.lifecycle.purge(entry_id, owner_id, reason="manual")

    def _purge_each(self, entry_ids: List[str], reason: str) -> CleanupResult:
        started = time.perf_counter()
        result = CleanupResult(reason=reason, items_scanned=len(entry_ids))

        for entry_id in entry_ids:
            try:
                entry = self.db.get(RecycleEntry, entry_id)
                if entry is None:
                    continue
                freed = self.lifecycle.purge_entry(entry, reason=reason)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                self.lifecycle.discard_pending_blobs()
                error_msg = f"Failed to purge recycle entry {entry_id}: {e}"
                logger.exception(error_msg)
                result.errors.append(error_msg)
                continue

            self.lifecycle.delete_pending_blobs()
            result.items_purged += 1
            result.space_freed_bytes += freed

        result.duration_seconds = time.perf_counter() - started
        logger.info(
            f"Recycle purge ({reason}) completed: "
            f"{result.items_purged}/{result.items_scanned} items purged, "
            f"{result.space_freed_bytes} bytes freed, {len(result.errors)} errors"
        )
        return result

    def empty_recycle_bin(self, owner_id: str) -> CleanupResult:
        """Permanently delete every entry in an owner's recycle bin."""
        entry_ids = [
            row.id for row in
            self.db.query(RecycleEntry.id).filter(RecycleEntry.owner_id == owner_id).all()
        ]
        logger.info(f"Emptying recycle bin of {owner_id}: {len(entry_ids)} items")
        return self._purge_each(entry_ids, reason="empty")

    def cleanup_expired_items(self) -> CleanupResult:
        """
        Purge every entry whose retention window has elapsed

        Invoked periodically by an external scheduler. A failure on one item
        is logged and the sweep moves on.
        """
        now = self.clock()
        entry_ids = [
            row.id for row in
            self.db.query(RecycleEntry.id)
            .filter(RecycleEntry.expires_at <= now)
            .order_by(RecycleEntry.expires_at.asc())
            .all()
        ]
        logger.info(f"Expiry sweep at {now.isoformat()}: {len(entry_ids)} expired items")
        return self._purge_each(entry_ids, reason="expired")

    def get_cleanup_report(self, result: CleanupResult) -> str:
        """
        Generate human-readable purge report
        """
        report = [
            "=" * 60,
            f"RECYCLE BIN PURGE REPORT ({result.reason})",
            "=" * 60,
            f"Items scanned: {result.items_scanned}",
            f"Items purged: {result.items_purged}",
            f"Space freed: {result.space_freed_mb:.2f} MB",
            f"Duration: {result.duration_seconds:.2f}s",
            f"Errors: {len(result.errors)}",
        ]
        for error in result.errors[:5]:  # Show first 5 errors
            report.append(f"  - {error}")
        return "\n".join(report)
