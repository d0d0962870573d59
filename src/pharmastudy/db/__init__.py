"""Database module for relational persistence.

Provides:
- Engine/session management (SQLAlchemy)
- ORM models for users and study content
- Repository functions scoped by the owning user
"""

from pharmastudy.db.database import get_db, get_session, init_db

__all__ = ["get_db", "get_session", "init_db"]
