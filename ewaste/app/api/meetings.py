"""Meeting request endpoints for marketplace hand-overs."""

from datetime import datetime
from typing import List

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from ewaste.app.core.logging import get_logger
from ewaste.app.db.crud import create_meeting_request, get_marketplace_item, list_meeting_requests
from ewaste.app.db.dependencies import SessionDep
from ewaste.app.db.models import MeetingRequest

router = APIRouter(prefix="/v1/meeting-requests", tags=["meetings"])
logger = get_logger(__name__)


class MeetingPoint(BaseModel):
    name: str
    type: str
    lat: float
    lng: float
    distance: float = Field(0, ge=0)


class MeetingRequestCreate(BaseModel):
    item_id: int
    requester_id: str = Field(..., min_length=1)
    requester_email: str = Field(..., min_length=3)
    meeting_point: MeetingPoint


class MeetingRequestResponse(BaseModel):
    id: int
    item_id: int
    item_title: str
    owner_id: str
    requester_id: str
    requester_email: str
    meeting_point: MeetingPoint
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


@router.post("", response_model=MeetingRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(data: MeetingRequestCreate, session: SessionDep) -> MeetingRequest:
    """Ask the listing owner to meet at a suggested point."""
    try:
        item = await get_marketplace_item(session, data.item_id)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Listing {data.item_id} not found",
            )
        return await create_meeting_request(
            session,
            item_id=item.id,
            item_title=item.title,
            owner_id=item.user_id,
            requester_id=data.requester_id,
            requester_email=data.requester_email,
            meeting_point=data.meeting_point.model_dump(),
        )
    except SQLAlchemyError as e:
        logger.error(f"Database error creating meeting request: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error occurred while creating the meeting request",
        )


@router.get("", response_model=List[MeetingRequestResponse])
async def list_requests(owner_id: str, session: SessionDep) -> List[MeetingRequest]:
    """Meeting requests addressed to ``owner_id``, newest first."""
    try:
        return await list_meeting_requests(session, owner_id)
    except SQLAlchemyError as e:
        logger.error(f"Database error listing meeting requests: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error occurred while listing meeting requests",
        )
