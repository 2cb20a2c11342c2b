"""Per-user waste history endpoints."""

from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from ewaste.app.core.logging import get_log_context, get_logger
from ewaste.app.db.crud import get_last_30_days_data, get_user_waste_data, save_waste_data
from ewaste.app.db.dependencies import SessionDep
from ewaste.app.db.models import WasteRecord
from ewaste.app.services.insights import daily_trend

router = APIRouter(prefix="/v1/users/{user_id}/waste-data", tags=["waste-data"])
logger = get_logger(__name__)


class DetectedItemIn(BaseModel):
    type: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)


class WasteDataCreate(BaseModel):
    items: List[DetectedItemIn]


class WasteRecordResponse(BaseModel):
    id: int
    user_id: str
    detected_items: Dict[str, List[Dict[str, Any]]]
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class TrendPoint(BaseModel):
    date: str
    total: int
    items: Dict[str, int]


@router.post("", response_model=WasteRecordResponse, status_code=status.HTTP_201_CREATED)
async def save_session(
    user_id: str,
    data: WasteDataCreate,
    session: SessionDep,
) -> WasteRecord:
    """Save detected items grouped by category."""
    try:
        return await save_waste_data(
            session, [item.model_dump() for item in data.items], user_id
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except SQLAlchemyError as e:
        logger.error(f"Database error saving waste data: {e}", extra=get_log_context(user_id=user_id))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error occurred while saving waste data",
        )


@router.get("", response_model=List[WasteRecordResponse])
async def list_history(
    user_id: str,
    session: SessionDep,
    limit: int = 30,
) -> List[WasteRecord]:
    """Most recent records, newest first."""
    try:
        return await get_user_waste_data(session, user_id, limit=min(max(limit, 1), 30))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except SQLAlchemyError as e:
        logger.error(f"Database error listing waste data: {e}", extra=get_log_context(user_id=user_id))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error occurred while listing waste data",
        )


@router.get("/trend", response_model=List[TrendPoint])
async def get_trend(user_id: str, session: SessionDep) -> List[Dict[str, Any]]:
    """Per-day totals over the last 30 days, oldest day first."""
    try:
        records = await get_last_30_days_data(session, user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except SQLAlchemyError as e:
        logger.error(f"Database error loading trend: {e}", extra=get_log_context(user_id=user_id))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error occurred while loading the trend",
        )
    return daily_trend(records)
