"""Marketplace listing endpoints."""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from ewaste.app.core.logging import get_logger
from ewaste.app.db.crud import (
    add_marketplace_item,
    convert_to_marketplace_item,
    delete_marketplace_item,
    get_marketplace_item,
    get_marketplace_items,
    update_marketplace_item_status,
)
from ewaste.app.db.dependencies import SessionDep
from ewaste.app.db.models import MarketplaceItem

router = APIRouter(prefix="/v1/marketplace", tags=["marketplace"])
logger = get_logger(__name__)

Condition = Literal["new", "good", "fair", "poor"]
ListingKind = Literal["give", "take"]
Status = Literal["available", "pending", "completed"]


class Location(BaseModel):
    lat: float = 0
    lng: float = 0
    address: str = ""


class Contact(BaseModel):
    email: str
    phone: Optional[str] = None


class ListingFields(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    condition: Condition
    type: ListingKind
    # None means free
    price: Optional[float] = Field(None, ge=0)
    description: str = ""
    location: Optional[Location] = None
    contact: Contact
    user_id: str = Field(..., min_length=1)


class ListingCreate(ListingFields):
    category: str = Field(..., min_length=1)
    recycling_guide: str = ""
    disposal_instructions: str = ""
    images: List[str] = Field(default_factory=list)


class ListingConvert(ListingFields):
    detected_type: str = Field(..., min_length=1)
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class StatusUpdate(BaseModel):
    status: Status


class ListingResponse(BaseModel):
    id: int
    title: str
    category: str
    condition: str
    type: str
    price: Optional[float]
    description: str
    recycling_guide: str
    disposal_instructions: str
    images: List[str]
    location: Location
    user_id: str
    contact: Contact
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


def _db_error(action: str, e: SQLAlchemyError) -> HTTPException:
    logger.error(f"Database error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Database error occurred while {action}",
    )


def _dump(model: Optional[BaseModel]) -> Optional[dict]:
    return model.model_dump() if model is not None else None


@router.post("", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(data: ListingCreate, session: SessionDep) -> MarketplaceItem:
    try:
        return await add_marketplace_item(
            session,
            user_id=data.user_id,
            title=data.title,
            category=data.category,
            condition=data.condition,
            type=data.type,
            price=data.price,
            description=data.description,
            recycling_guide=data.recycling_guide,
            disposal_instructions=data.disposal_instructions,
            images=data.images,
            location=_dump(data.location),
            contact=data.contact.model_dump(),
        )
    except SQLAlchemyError as e:
        raise _db_error("creating the listing", e)


@router.post("/convert", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def convert_detection(data: ListingConvert, session: SessionDep) -> MarketplaceItem:
    """List a detected item; its category comes from the waste classifier."""
    try:
        return await convert_to_marketplace_item(
            session,
            detected_type=data.detected_type,
            user_id=data.user_id,
            title=data.title,
            condition=data.condition,
            type=data.type,
            price=data.price,
            description=data.description,
            location=_dump(data.location),
            contact=data.contact.model_dump(),
        )
    except SQLAlchemyError as e:
        raise _db_error("converting the detected item", e)


@router.get("", response_model=List[ListingResponse])
async def list_listings(
    session: SessionDep,
    category: Optional[str] = None,
    type: Optional[ListingKind] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> List[MarketplaceItem]:
    """List listings newest first, optionally filtered."""
    try:
        return await get_marketplace_items(
            session,
            category=category,
            type=type,
            min_price=min_price,
            max_price=max_price,
        )
    except SQLAlchemyError as e:
        raise _db_error("listing marketplace items", e)


@router.get("/{item_id}", response_model=ListingResponse)
async def get_listing(item_id: int, session: SessionDep) -> MarketplaceItem:
    try:
        item = await get_marketplace_item(session, item_id)
    except SQLAlchemyError as e:
        raise _db_error("loading the listing", e)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Listing {item_id} not found",
        )
    return item


@router.patch("/{item_id}/status", response_model=ListingResponse)
async def update_status(item_id: int, data: StatusUpdate, session: SessionDep) -> MarketplaceItem:
    try:
        updated = await update_marketplace_item_status(session, item_id, data.status)
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Listing {item_id} not found",
            )
        item = await get_marketplace_item(session, item_id)
    except SQLAlchemyError as e:
        raise _db_error("updating the listing status", e)
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(item_id: int, session: SessionDep) -> None:
    try:
        deleted = await delete_marketplace_item(session, item_id)
    except SQLAlchemyError as e:
        raise _db_error("deleting the listing", e)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Listing {item_id} not found",
        )
