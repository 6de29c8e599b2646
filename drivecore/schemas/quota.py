"""
Pydantic schema for storage usage reports.
"""
from pydantic import BaseModel, Field


class UsageReport(BaseModel):
    """Schema for an owner's storage usage against their quota."""
    owner_id: str
    quota_bytes: int = Field(..., ge=0)
    used_bytes: int = Field(..., ge=0, description="Authoritative sum of active file sizes")
    cached_used_bytes: int = Field(..., ge=0, description="Counter kept on the quota row")
    available_bytes: int = Field(..., ge=0)
    usage_percentage: float
    is_exceeded: bool
    is_warning: bool
