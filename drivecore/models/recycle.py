"""
SQLAlchemy model for recycle bin entries.
Represents the recycle_bin table in the database.
"""
import enum

from sqlalchemy import Column, String, BigInteger, DateTime, Enum, ForeignKey

from drivecore.models.base import Base, new_id, utcnow


class RecycleItemType(str, enum.Enum):
    """Kind of item a recycle entry points at."""
    FILE = "file"
    FOLDER = "folder"


class RecycleEntry(Base):
    """
    Recycle bin entry for a soft-deleted file or folder.

    file_id/folder_id are lookup-only references: no relationship cascades
    from the referenced record back onto the entry.
    """
    __tablename__ = "recycle_bin"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), nullable=False, index=True)

    file_id = Column(
        String(36),
        ForeignKey("files.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    folder_id = Column(
        String(36),
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    item_type = Column(
        Enum(
            RecycleItemType,
            name="recycle_item_type",
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    item_name = Column(String(512), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    original_path = Column(String(2048), nullable=True)

    deleted_by = Column(String(36), nullable=False)
    deleted_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return (
            f"<RecycleEntry(id={self.id}, type={self.item_type}, "
            f"name={self.item_name!r}, expires_at={self.expires_at})>"
        )
