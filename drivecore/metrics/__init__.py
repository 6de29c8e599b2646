"""
Metrics module for engine monitoring.

This module provides Prometheus metrics collection and helper functions.
"""
from drivecore.metrics.prometheus import (
    # Lifecycle
    files_created_total,
    files_recycled_total,
    files_restored_total,
    files_purged_total,

    # Versions
    versions_created_total,
    versions_evicted_total,

    # Quota
    quota_rejections_total,
    storage_used_bytes,
    storage_quota_bytes,

    # Blob store
    storage_operations_total,
    storage_operation_duration_seconds,

    # Helpers
    record_file_created,
    record_item_recycled,
    record_item_restored,
    record_item_purged,
    record_version_created,
    record_version_evicted,
    record_quota_rejection,
    record_storage_operation,
    update_storage_metrics,
)

__all__ = [
    "files_created_total",
    "files_recycled_total",
    "files_restored_total",
    "files_purged_total",
    "versions_created_total",
    "versions_evicted_total",
    "quota_rejections_total",
    "storage_used_bytes",
    "storage_quota_bytes",
    "storage_operations_total",
    "storage_operation_duration_seconds",
    "record_file_created",
    "record_item_recycled",
    "record_item_restored",
    "record_item_purged",
    "record_version_created",
    "record_version_evicted",
    "record_quota_rejection",
    "record_storage_operation",
    "update_storage_metrics",
]
