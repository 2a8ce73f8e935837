"""Database module."""
from .engine import close_db, get_engine, get_session_factory, init_db, session_scope
from .session import get_db

__all__ = [
    "get_engine",
    "get_session_factory",
    "session_scope",
    "init_db",
    "close_db",
    "get_db",
]
