"""
SQLAlchemy model for historical file versions.
Represents the file_versions table in the database.
"""
from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from drivecore.models.base import Base, new_id, utcnow


class VersionRecord(Base):
    """
    Immutable snapshot of a file's blob and metadata.
    Version numbers are monotonic per file and never reused after eviction.
    """
    __tablename__ = "file_versions"

    id = Column(String(36), primary_key=True, default=new_id)
    file_id = Column(
        String(36),
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number = Column(Integer, nullable=False)

    # Snapshot
    blob_key = Column(String(1024), nullable=False)
    name = Column(String(512), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    media_type = Column(String(255), nullable=False)

    uploaded_by = Column(String(36), nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    file = relationship("FileRecord", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("file_id", "version_number", name="uq_file_versions_number"),
    )

    def __repr__(self):
        return f"<VersionRecord(file_id={self.file_id}, version={self.version_number})>"
