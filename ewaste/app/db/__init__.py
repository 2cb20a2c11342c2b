"""Database package.

This package provides:
- Database models (WasteRecord, MarketplaceItem, MeetingRequest)
- Asynchronous session management
- CRUD operations for all models
- FastAPI dependency injection support
"""

from ewaste.app.db.base import Base
from ewaste.app.db.models import MarketplaceItem, MeetingRequest, WasteRecord
from ewaste.app.db.async_session import (
    SessionDep,
    close_async_engine,
    get_async_engine,
    get_async_session,
    get_async_session_maker,
    get_db,
    init_async_db,
)

__all__ = [
    # Base
    "Base",
    # Models
    "MarketplaceItem",
    "MeetingRequest",
    "WasteRecord",
    # Session
    "close_async_engine",
    "get_async_engine",
    "get_async_session",
    "get_async_session_maker",
    "get_db",
    "init_async_db",
    # FastAPI Dependencies
    "SessionDep",
]
