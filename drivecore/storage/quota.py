"""
Storage Quota Accounting Service

Tracks and enforces per-owner bytes-used against a quota ceiling.
Implements:
- Authoritative usage (sum of sizes of the owner's active files)
- Cached usage counter kept in step with every size-changing mutation
- Quota enforcement before lifecycle mutations commit
- Usage reconciliation and reporting

The quota row is loaded with a row lock, so a check followed by an adjust in
the same transaction is serialized per owner on databases with row locking.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from drivecore.core.config import settings
from drivecore.core.errors import NotFoundError, QuotaExceededError
from drivecore.metrics import record_quota_rejection, update_storage_metrics
from drivecore.models import FileRecord, UserQuota

logger = logging.getLogger(__name__)


@dataclass
class QuotaCheck:
    """
    Result of checking incoming bytes against an owner's ceiling
    """
    owner_id: str
    quota_bytes: int
    used_bytes: int
    incoming_bytes: int
    warning_threshold: float = 0.8

    @property
    def would_use_bytes(self) -> int:
        return self.used_bytes + self.incoming_bytes

    @property
    def allowed(self) -> bool:
        """Allowed unless used + incoming exceeds the ceiling; shrinking is always allowed"""
        return self.incoming_bytes <= 0 or self.would_use_bytes <= self.quota_bytes

    @property
    def usage_percentage(self) -> float:
        """Get usage percentage"""
        if self.quota_bytes == 0:
            return 0.0
        return (self.used_bytes / self.quota_bytes) * 100

    @property
    def is_warning(self) -> bool:
        """Check if usage is above warning threshold"""
        return self.usage_percentage >= (self.warning_threshold * 100)


class StorageAccountant:
    """
    Per-owner storage accounting

    Features:
    - Quota ceilings stored per owner
    - Enforcement that raises a user-facing QuotaExceededError
    - Usage adjustment floored at zero
    - Reconciliation of the cached counter with the authoritative sum
    """

    def __init__(
        self,
        db: Session,
        warning_threshold: Optional[float] = None
    ):
        """
        Initialize storage accountant

        Args:
            db: Request-scoped database session
            warning_threshold: Usage ratio (0.0-1.0) that triggers warnings
        """
        self.db = db
        self.warning_threshold = (
            warning_threshold if warning_threshold is not None
            else settings.QUOTA_WARNING_THRESHOLD
        )

    def get_quota(self, owner_id: str, lock: bool = False) -> UserQuota:
        """
        Get the quota row for an owner

        Args:
            owner_id: Owner whose quota to load
            lock: Take a row lock for the rest of the transaction

        Raises:
            NotFoundError: If the owner has no quota record
        """
        query = self.db.query(UserQuota).filter(UserQuota.owner_id == owner_id)
        if lock:
            query = query.with_for_update()
        quota = query.one_or_none()

        if quota is None:
            raise NotFoundError(f"No storage quota found for user '{owner_id}'")
        return quota

    def set_quota(self, owner_id: str, quota_bytes: Optional[int] = None) -> UserQuota:
        """
        Create or update an owner's quota ceiling

        Args:
            owner_id: Owner ID
            quota_bytes: Ceiling in bytes (default: DEFAULT_QUOTA_BYTES)

        Returns:
            UserQuota with its cached usage reconciled
        """
        if quota_bytes is None:
            quota_bytes = settings.DEFAULT_QUOTA_BYTES
        if quota_bytes < 0:
            raise ValueError("quota_bytes must be >= 0")

        quota = self.db.get(UserQuota, owner_id)
        if quota is None:
            quota = UserQuota(owner_id=owner_id, quota_bytes=quota_bytes, used_bytes=0)
            self.db.add(quota)
        else:
            quota.quota_bytes = quota_bytes

        quota.used_bytes = self.calculate_usage(owner_id)
        self.db.flush()

        logger.info(f"Set quota for '{owner_id}': {quota_bytes} bytes (used {quota.used_bytes})")
        update_storage_metrics(owner_id, quota.used_bytes, quota.quota_bytes)
        return quota

    def calculate_usage(self, owner_id: str) -> int:
        """
        Authoritative bytes used: sum of sizes of the owner's active files
        """
        self.db.flush()
        total = (
            self.db.query(func.coalesce(func.sum(FileRecord.size), 0))
            .filter(FileRecord.owner_id == owner_id, FileRecord.is_deleted.is_(False))
            .scalar()
        )
        return int(total or 0)

    def check_quota(self, owner_id: str, incoming_bytes: int) -> QuotaCheck:
        """
        Check whether an owner can take on additional bytes

        Args:
            owner_id: Owner ID
            incoming_bytes: Net bytes the pending mutation adds

        Returns:
            QuotaCheck with the decision and figures
        """
        quota = self.get_quota(owner_id, lock=True)
        return QuotaCheck(
            owner_id=owner_id,
            quota_bytes=quota.quota_bytes,
            used_bytes=self.calculate_usage(owner_id),
            incoming_bytes=incoming_bytes,
            warning_threshold=self.warning_threshold
        )

    def enforce_quota(self, owner_id: str, incoming_bytes: int) -> QuotaCheck:
        """
        Enforce quota before a mutation commits

        Raises:
            QuotaExceededError: If used + incoming would exceed the ceiling
        """
        check = self.check_quota(owner_id, incoming_bytes)

        if not check.allowed:
            record_quota_rejection()
            logger.warning(
                f"Quota exceeded for '{owner_id}': "
                f"would use {check.would_use_bytes} / {check.quota_bytes} bytes"
            )
            raise QuotaExceededError(
                f"Storage quota exceeded. "
                f"Used: {check.used_bytes} bytes, "
                f"Quota: {check.quota_bytes} bytes, "
                f"File size: {incoming_bytes} bytes",
                owner_id=owner_id,
                used_bytes=check.used_bytes,
                quota_bytes=check.quota_bytes,
                incoming_bytes=incoming_bytes
            )

        if check.is_warning:
            logger.warning(
                f"Quota warning for '{owner_id}': {check.usage_percentage:.1f}% used"
            )

        return check

    def adjust_usage(self, owner_id: str, delta_bytes: int) -> int:
        """
        Apply a size delta to the cached counter, floored at zero

        Returns:
            New cached used_bytes (0 when the owner has no quota row)
        """
        quota = self.db.query(UserQuota).filter(
            UserQuota.owner_id == owner_id
        ).with_for_update().one_or_none()

        if quota is None:
            logger.warning(f"Usage adjustment of {delta_bytes} bytes skipped: no quota for '{owner_id}'")
            return 0

        quota.used_bytes = max(0, quota.used_bytes + delta_bytes)
        self.db.flush()

        update_storage_metrics(owner_id, quota.used_bytes, quota.quota_bytes)
        return quota.used_bytes

    def reconcile_usage(self, owner_id: str) -> UserQuota:
        """
        Rewrite the cached counter from the authoritative sum
        """
        quota = self.get_quota(owner_id, lock=True)
        actual = self.calculate_usage(owner_id)

        if quota.used_bytes != actual:
            logger.info(
                f"Reconciled usage for '{owner_id}': cached {quota.used_bytes} -> actual {actual}"
            )
            quota.used_bytes = actual
            self.db.flush()

        update_storage_metrics(owner_id, quota.used_bytes, quota.quota_bytes)
        return quota

    def get_usage_report(self, owner_id: str) -> Dict[str, Any]:
        """
        Get usage report for one owner

        Returns:
            Usage report dictionary
        """
        quota = self.get_quota(owner_id)
        used = self.calculate_usage(owner_id)
        check = QuotaCheck(
            owner_id=owner_id,
            quota_bytes=quota.quota_bytes,
            used_bytes=used,
            incoming_bytes=0,
            warning_threshold=self.warning_threshold
        )

        return {
            'owner_id': owner_id,
            'quota_bytes': quota.quota_bytes,
            'used_bytes': used,
            'cached_used_bytes': quota.used_bytes,
            'available_bytes': max(0, quota.quota_bytes - used),
            'usage_percentage': round(check.usage_percentage, 2),
            'is_exceeded': used > quota.quota_bytes,
            'is_warning': check.is_warning,
        }
