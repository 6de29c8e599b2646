"""
Pydantic schemas for file records, versions and transfer URLs.
"""
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field


class FileRecordOut(BaseModel):
    """Schema for an active file record."""
    id: str
    owner_id: str
    folder_id: Optional[str] = None
    name: str
    size: int = Field(..., ge=0, description="Size of the current version in bytes")
    media_type: str
    current_version: int = Field(..., ge=1)
    blob_key: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VersionRecordOut(BaseModel):
    """Schema for one entry of a file's version history."""
    id: str
    file_id: str
    version_number: int = Field(..., ge=1)
    name: str
    size: int = Field(..., ge=0)
    media_type: str
    uploaded_by: Optional[str] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True


class FilePage(BaseModel):
    """Schema for a paginated file listing or search."""
    total: int
    page: int
    page_size: int
    items: List[FileRecordOut]

    class Config:
        from_attributes = True


class UploadTicket(BaseModel):
    """Presigned upload target handed to a client before it uploads bytes."""
    key: str = Field(..., description="Object key to pass back when confirming the upload")
    url: str = Field(..., description="Presigned PUT URL")
    expires_in: int = Field(..., description="Seconds until the URL expires")
    expires_at: Optional[datetime] = None


class TransferURL(BaseModel):
    """Schema for a presigned download URL."""
    url: str
    object_name: str
    method: str
    expires_in_seconds: int
    expires_at: datetime

    class Config:
        from_attributes = True
