"""
Pydantic schema for folders.
"""
from typing import Optional
from datetime import datetime

from pydantic import BaseModel


class FolderOut(BaseModel):
    """Schema for an active folder."""
    id: str
    owner_id: str
    name: str
    parent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
