"""
Prometheus metrics for the storage lifecycle engine.

This module defines the Prometheus metrics recorded by the storage services:
- File lifecycle metrics (created, recycled, restored, purged)
- Version history metrics (created, evicted)
- Quota metrics (rejections, per-owner usage)
- Blob store metrics (operations, duration)
"""
from prometheus_client import Counter, Gauge, Histogram


# ============================================================================
# File Lifecycle Metrics
# ============================================================================

files_created_total = Counter(
    "drive_files_created_total",
    "Total number of file records created",
)

files_recycled_total = Counter(
    "drive_items_recycled_total",
    "Total number of items moved to the recycle bin",
    ["item_type"],
)

files_restored_total = Counter(
    "drive_items_restored_total",
    "Total number of items restored from the recycle bin",
    ["item_type"],
)

files_purged_total = Counter(
    "drive_items_purged_total",
    "Total number of items permanently deleted",
    ["item_type", "reason"],  # reason: manual, empty, expired
)


# ============================================================================
# Version Metrics
# ============================================================================

versions_created_total = Counter(
    "drive_versions_created_total",
    "Total number of file versions created",
    ["source"],  # source: upload, restore
)

versions_evicted_total = Counter(
    "drive_versions_evicted_total",
    "Total number of versions evicted by the per-file ceiling",
)


# ============================================================================
# Quota Metrics
# ============================================================================

quota_rejections_total = Counter(
    "drive_quota_rejections_total",
    "Total number of mutations rejected for exceeding quota",
)

storage_used_bytes = Gauge(
    "drive_storage_used_bytes",
    "Bytes used by an owner's active files",
    ["owner_id"],
)

storage_quota_bytes = Gauge(
    "drive_storage_quota_bytes",
    "Quota ceiling for an owner",
    ["owner_id"],
)


# ============================================================================
# Blob Store Metrics
# ============================================================================

storage_operations_total = Counter(
    "drive_blob_operations_total",
    "Total number of blob store operations",
    ["operation", "status"],
)

storage_operation_duration_seconds = Histogram(
    "drive_blob_operation_duration_seconds",
    "Duration of blob store operations",
    ["operation"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


# ============================================================================
# Helper Functions
# ============================================================================

def record_file_created():
    """Record a new file record."""
    files_created_total.inc()


def record_item_recycled(item_type: str):
    """Record a soft delete."""
    files_recycled_total.labels(item_type=item_type).inc()


def record_item_restored(item_type: str):
    """Record a restore from the recycle bin."""
    files_restored_total.labels(item_type=item_type).inc()


def record_item_purged(item_type: str, reason: str):
    """Record a permanent delete."""
    files_purged_total.labels(item_type=item_type, reason=reason).inc()


def record_version_created(source: str):
    """Record a new version row."""
    versions_created_total.labels(source=source).inc()


def record_version_evicted():
    """Record an eviction."""
    versions_evicted_total.inc()


def record_quota_rejection():
    """Record a quota rejection."""
    quota_rejections_total.inc()


def record_storage_operation(operation: str, success: bool, duration: float):
    """Record blob store operation metrics."""
    status = "success" if success else "failed"
    storage_operations_total.labels(operation=operation, status=status).inc()
    storage_operation_duration_seconds.labels(operation=operation).observe(duration)


def update_storage_metrics(owner_id: str, used_bytes: int, quota_bytes: int):
    """Update storage usage metrics."""
    storage_used_bytes.labels(owner_id=owner_id).set(used_bytes)
    storage_quota_bytes.labels(owner_id=owner_id).set(quota_bytes)
