"""
Pydantic schemas for recycle bin entries and purge reports.
"""
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from drivecore.models.recycle import RecycleItemType


class RecycleEntryOut(BaseModel):
    """Schema for a recycle bin listing entry."""
    id: str
    owner_id: str
    item_type: RecycleItemType
    item_name: str
    size: int = Field(..., ge=0)
    original_path: Optional[str] = None
    file_id: Optional[str] = None
    folder_id: Optional[str] = None
    deleted_by: str
    deleted_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True


class CleanupReport(BaseModel):
    """Schema for the outcome of a purge run (empty bin or expiry sweep)."""
    reason: str
    items_scanned: int
    items_purged: int
    space_freed_bytes: int
    space_freed_mb: float
    errors: List[str] = Field(default_factory=list)
    duration_seconds: float
