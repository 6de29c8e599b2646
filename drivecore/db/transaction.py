"""
Unit-of-work helper for public engine operations.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Commit on success, roll back and re-raise on any error.

    Usage:
        with transaction(self.db):
            ...mutations...

    Yields:
        Session: the same session, for convenience
    """
    try:
        yield db
        db.commit()
    except Exception as e:
        logger.debug(f"Rolling back transaction: {type(e).__name__}: {e}")
        db.rollback()
        raise
