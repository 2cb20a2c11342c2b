from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ewaste.app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ItemCondition(str, Enum):
    NEW = "new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ListingType(str, Enum):
    GIVE = "give"
    TAKE = "take"


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    COMPLETED = "completed"


class MeetingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class WasteRecord(Base):
    """One saved capture session, items grouped by waste category."""

    __tablename__ = "waste_records"
    __table_args__ = (
        Index("idx_waste_records_user_timestamp", "user_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128))
    # {"recyclable": [{"type": ..., "confidence": ...}], "electronic": [...], ...}
    detected_items: Mapped[dict] = mapped_column(JSON, default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class MarketplaceItem(Base):
    __tablename__ = "marketplace_items"
    __table_args__ = (
        Index("idx_marketplace_created", "created_at"),
        Index("idx_marketplace_category_type", "category", "type"),
        Index("idx_marketplace_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(32))
    condition: Mapped[str] = mapped_column(String(16))  # new | good | fair | poor
    type: Mapped[str] = mapped_column(String(16))  # give | take
    # None means the item is free
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
    recycling_guide: Mapped[str] = mapped_column(Text, default="")
    disposal_instructions: Mapped[str] = mapped_column(Text, default="")
    images: Mapped[list] = mapped_column(JSON, default=list)
    # {"lat": float, "lng": float, "address": str}
    location: Mapped[dict] = mapped_column(JSON, default=dict)
    user_id: Mapped[str] = mapped_column(String(128))
    # {"email": str, "phone": str | None}
    contact: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(16), default=ListingStatus.AVAILABLE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class MeetingRequest(Base):
    __tablename__ = "meeting_requests"
    __table_args__ = (
        Index("idx_meeting_requests_owner", "owner_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(Integer)
    item_title: Mapped[str] = mapped_column(String(200))
    owner_id: Mapped[str] = mapped_column(String(128))
    requester_id: Mapped[str] = mapped_column(String(128))
    requester_email: Mapped[str] = mapped_column(String(256))
    # {"name", "type", "lat", "lng", "distance"}
    meeting_point: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(16), default=MeetingStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
