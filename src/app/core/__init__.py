"""
Core module - Configuration, database, security, and utilities.
"""

from app.core.config import get_settings, settings
from app.core.database import Base, atomic, close_db, get_db, init_db
from app.core.logging import configure_logging
from app.core.security import create_access_token, decode_token

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "atomic",
    "get_db",
    "init_db",
    "close_db",
    # Logging
    "configure_logging",
    # Security
    "create_access_token",
    "decode_token",
]
