"""
Database module for SQLAlchemy session management.

Engine and session factory live in ``drivecore.db.session`` and are created
on import of that module; ``transaction`` has no engine dependency.
"""
from drivecore.db.transaction import transaction

__all__ = ["transaction"]
