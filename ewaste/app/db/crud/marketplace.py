"""Marketplace listing CRUD operations."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ewaste.app.db.models import ItemCondition, ListingStatus, ListingType, MarketplaceItem
from ewaste.app.services.categories import get_waste_category


def normalize_location(location: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    location = location or {}
    return {
        "lat": location.get("lat") or 0,
        "lng": location.get("lng") or 0,
        "address": location.get("address") or "",
    }


async def add_marketplace_item(
    session: AsyncSession,
    user_id: str,
    title: str,
    category: str,
    condition: str,
    type: str,
    price: Optional[float] = None,
    description: str = "",
    recycling_guide: str = "",
    disposal_instructions: str = "",
    images: Optional[List[str]] = None,
    location: Optional[Mapping[str, Any]] = None,
    contact: Optional[Mapping[str, Any]] = None,
    auto_commit: bool = True,
) -> MarketplaceItem:
    """Create a listing. New listings always start as ``available``.

    Raises:
        ValueError: If condition or type is not a known value
    """
    item = MarketplaceItem(
        title=title,
        category=category,
        condition=ItemCondition(condition).value,
        type=ListingType(type).value,
        price=price,
        description=description,
        recycling_guide=recycling_guide,
        disposal_instructions=disposal_instructions,
        images=list(images or []),
        location=normalize_location(location),
        user_id=user_id,
        contact=dict(contact or {}),
        status=ListingStatus.AVAILABLE.value,
    )
    session.add(item)
    if auto_commit:
        await session.commit()
        await session.refresh(item)
    else:
        await session.flush()
    return item


async def get_marketplace_items(
    session: AsyncSession,
    category: Optional[str] = None,
    type: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> List[MarketplaceItem]:
    """List listings newest first. Free items count as price 0 for range filters."""
    query = select(MarketplaceItem)
    if category:
        query = query.where(MarketplaceItem.category == category)
    if type:
        query = query.where(MarketplaceItem.type == type)
    effective_price = func.coalesce(MarketplaceItem.price, 0)
    if min_price is not None:
        query = query.where(effective_price >= min_price)
    if max_price is not None:
        query = query.where(effective_price <= max_price)
    query = query.order_by(MarketplaceItem.created_at.desc(), MarketplaceItem.id.desc())
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_marketplace_item(
    session: AsyncSession,
    item_id: int,
) -> Optional[MarketplaceItem]:
    result = await session.execute(
        select(MarketplaceItem).where(MarketplaceItem.id == item_id)
    )
    return result.scalar_one_or_none()


async def convert_to_marketplace_item(
    session: AsyncSession,
    detected_type: str,
    user_id: str,
    title: str,
    condition: str,
    type: str,
    price: Optional[float] = None,
    description: str = "",
    location: Optional[Mapping[str, Any]] = None,
    contact: Optional[Mapping[str, Any]] = None,
    auto_commit: bool = True,
) -> MarketplaceItem:
    """List a detected item, categorized by the waste classifier."""
    return await add_marketplace_item(
        session,
        user_id=user_id,
        title=title,
        category=get_waste_category(detected_type).value,
        condition=condition,
        type=type,
        price=price,
        description=description,
        recycling_guide=f"Recycling guide for {detected_type}",
        disposal_instructions=f"Disposal instructions for {detected_type}",
        images=[],
        location=location,
        contact=contact,
        auto_commit=auto_commit,
    )


async def update_marketplace_item_status(
    session: AsyncSession,
    item_id: int,
    status: str,
    auto_commit: bool = True,
) -> bool:
    """Set a listing's status.

    Returns:
        True if updated, False if the listing does not exist
    """
    item = await get_marketplace_item(session, item_id)
    if item is None:
        return False
    item.status = ListingStatus(status).value
    item.updated_at = datetime.now(timezone.utc)
    if auto_commit:
        await session.commit()
    return True


async def delete_marketplace_item(
    session: AsyncSession,
    item_id: int,
    auto_commit: bool = True,
) -> bool:
    item = await get_marketplace_item(session, item_id)
    if item is None:
        return False
    await session.delete(item)
    if auto_commit:
        await session.commit()
    return True
