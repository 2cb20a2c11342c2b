"""Database dependencies for FastAPI dependency injection.

Usage:
    from ewaste.app.db.dependencies import SessionDep

    @router.get("/items")
    async def list_items(session: SessionDep):
        ...
"""

from ewaste.app.db.async_session import SessionDep, get_db

__all__ = ["SessionDep", "get_db"]
