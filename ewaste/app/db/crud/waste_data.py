"""Waste history CRUD operations."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ewaste.app.db.models import WasteRecord
from ewaste.app.services.categories import WasteCategory, get_waste_category

HISTORY_LIMIT = 30
TREND_DAYS = 30

SAVED_CATEGORIES = (
    WasteCategory.RECYCLABLE,
    WasteCategory.ELECTRONIC,
    WasteCategory.HAZARDOUS,
    WasteCategory.ORGANIC,
)


def _require_user(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise ValueError("User must be authenticated")


def group_by_category(items: Iterable[Mapping[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group ``{type, confidence}`` items by category, dropping ``other``."""
    grouped: Dict[str, List[Dict[str, Any]]] = {c.value: [] for c in SAVED_CATEGORIES}
    for item in items:
        category = get_waste_category(item["type"])
        if category.value in grouped:
            grouped[category.value].append(
                {"type": item["type"], "confidence": float(item["confidence"])}
            )
    return grouped


async def save_waste_data(
    session: AsyncSession,
    items: Iterable[Mapping[str, Any]],
    user_id: str,
    auto_commit: bool = True,
) -> WasteRecord:
    """Persist one capture session for a user.

    Args:
        session: Database session from FastAPI dependency
        items: Detected items as ``{"type": str, "confidence": float}``
        user_id: Owner of the record
        auto_commit: Whether to commit the transaction

    Returns:
        The created WasteRecord

    Raises:
        ValueError: If user_id is empty
    """
    _require_user(user_id)
    record = WasteRecord(
        user_id=user_id,
        detected_items=group_by_category(items),
        timestamp=datetime.now(timezone.utc),
    )
    session.add(record)
    if auto_commit:
        await session.commit()
        await session.refresh(record)
    else:
        await session.flush()
    return record


async def get_user_waste_data(
    session: AsyncSession,
    user_id: str,
    limit: int = HISTORY_LIMIT,
) -> List[WasteRecord]:
    """Most recent records for a user, newest first."""
    _require_user(user_id)
    result = await session.execute(
        select(WasteRecord)
        .where(WasteRecord.user_id == user_id)
        .order_by(WasteRecord.timestamp.desc(), WasteRecord.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_last_30_days_data(
    session: AsyncSession,
    user_id: str,
    now: Optional[datetime] = None,
) -> List[WasteRecord]:
    """Records from the last 30 days, newest first."""
    _require_user(user_id)
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=TREND_DAYS)
    result = await session.execute(
        select(WasteRecord)
        .where(WasteRecord.user_id == user_id, WasteRecord.timestamp >= cutoff)
        .order_by(WasteRecord.timestamp.desc(), WasteRecord.id.desc())
    )
    return list(result.scalars().all())
