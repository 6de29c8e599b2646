"""
SQLAlchemy model for folders.
Represents the folders table in the database.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from drivecore.models.base import Base, new_id, utcnow


class FolderRecord(Base):
    """Folder node; parent links form an acyclic tree per owner."""
    __tablename__ = "folders"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), nullable=False, index=True)
    name = Column(String(512), nullable=False)
    parent_id = Column(
        String(36),
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    files = relationship("FileRecord", back_populates="folder")

    def __repr__(self):
        return f"<FolderRecord(id={self.id}, name={self.name!r})>"
