"""Advice endpoints backed by the throttled advice gateway.

Gateway failures propagate as AdviceError and are rendered by the
application's exception handler (429 with Retry-After, 502 or 503).
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ewaste.app.api.dependencies import GatewayDep, RegistryDep
from ewaste.app.core.logging import get_logger
from ewaste.app.services.detection import labels_of

router = APIRouter(prefix="/v1/advice", tags=["advice"])
logger = get_logger(__name__)


class AdviceRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    detected_items: List[str] = Field(default_factory=list)
    # Used for context when detected_items is empty
    session_id: Optional[str] = None


class AdviceResponse(BaseModel):
    advice: str


class HabitsRequest(BaseModel):
    items: List[str] = Field(default_factory=list)


class HabitsResponse(BaseModel):
    analysis: str


class DisposalGuideResponse(BaseModel):
    item_type: str
    guide: str


@router.post("", response_model=AdviceResponse)
async def request_advice(
    data: AdviceRequest,
    gateway: GatewayDep,
    registry: RegistryDep,
) -> AdviceResponse:
    """Ask for disposal advice about the detected items."""
    labels = data.detected_items
    if not labels and data.session_id:
        labels = labels_of(registry.items(data.session_id))
    try:
        advice = await gateway.request_advice(data.prompt, labels)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return AdviceResponse(advice=advice)


@router.post("/habits", response_model=HabitsResponse)
async def analyze_habits(data: HabitsRequest, gateway: GatewayDep) -> HabitsResponse:
    """Analyze disposal habits from a list of detected item types."""
    analysis = await gateway.analyze_waste_habits(data.items)
    return HabitsResponse(analysis=analysis)


@router.get("/disposal-guide/{item_type}", response_model=DisposalGuideResponse)
async def disposal_guide(item_type: str, gateway: GatewayDep) -> DisposalGuideResponse:
    try:
        guide = await gateway.get_disposal_guide(item_type)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return DisposalGuideResponse(item_type=item_type, guide=guide)


@router.get("/stats")
async def advice_stats(gateway: GatewayDep) -> Dict[str, Any]:
    """Queue length, window usage and backoff state."""
    return gateway.get_stats()
