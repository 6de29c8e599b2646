"""
SQLAlchemy model for logical file records.
Represents the files table in the database.
"""
from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import relationship

from drivecore.models.base import Base, new_id, utcnow


class FileRecord(Base):
    """
    Logical file: the live name/size/blob of the newest version.
    Maps to the 'files' table.
    """
    __tablename__ = "files"

    # Primary Key
    id = Column(String(36), primary_key=True, default=new_id)

    # Ownership & placement
    owner_id = Column(String(36), nullable=False, index=True)
    folder_id = Column(
        String(36),
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Live fields, mirrored from the current version
    blob_key = Column(String(1024), nullable=False)
    name = Column(String(512), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    media_type = Column(String(255), nullable=False, default="application/octet-stream")
    current_version = Column(Integer, nullable=False, default=1)

    # Soft delete
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    versions = relationship(
        "VersionRecord",
        back_populates="file",
        cascade="all, delete-orphan",
        order_by="VersionRecord.version_number",
    )
    folder = relationship("FolderRecord", back_populates="files")

    __table_args__ = (
        CheckConstraint("current_version >= 1", name="ck_files_current_version"),
        CheckConstraint("size >= 0", name="ck_files_size"),
        # One active record per (owner, folder, name)
        Index(
            "uq_files_active_name",
            "owner_id",
            "folder_id",
            "name",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        # NULL folder_id never collides above, so the root needs its own index
        Index(
            "uq_files_active_root_name",
            "owner_id",
            "name",
            unique=True,
            postgresql_where=text("folder_id IS NULL AND is_deleted = false"),
            sqlite_where=text("folder_id IS NULL AND is_deleted = 0"),
        ),
        Index("idx_files_owner_deleted_created", "owner_id", "is_deleted", "created_at"),
    )

    def __repr__(self):
        return f"<FileRecord(id={self.id}, name={self.name!r}, v={self.current_version})>"
