"""
SQLAlchemy model for per-owner storage quotas.
Represents the user_quotas table in the database.
"""
from sqlalchemy import Column, String, BigInteger, DateTime

from drivecore.models.base import Base, utcnow


class UserQuota(Base):
    """
    Quota ceiling and cached usage counter for one owner.

    used_bytes is an advisory cache kept in step with every size-changing
    mutation; the authoritative figure is the sum over active files.
    """
    __tablename__ = "user_quotas"

    owner_id = Column(String(36), primary_key=True)
    quota_bytes = Column(BigInteger, nullable=False)
    used_bytes = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<UserQuota(owner_id={self.owner_id}, used={self.used_bytes}/{self.quota_bytes})>"

    @property
    def available_bytes(self) -> int:
        """Get available space in bytes"""
        return max(0, self.quota_bytes - self.used_bytes)
