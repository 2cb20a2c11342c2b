"""Per-session detection endpoints.

The detector runs on the client and posts raw predictions here; only
waste-relevant predictions above the score threshold are stored.
"""

import time
from typing import List, Optional, Tuple

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ewaste.app.api.dependencies import RegistryDep
from ewaste.app.core.config import settings
from ewaste.app.core.logging import get_log_context, get_logger
from ewaste.app.services.detection import (
    Detection,
    WasteItem,
    detections_to_items,
    filter_waste_detections,
)
from ewaste.app.services.insights import (
    category_breakdown,
    get_recommendations,
    get_recycling_tips,
)

router = APIRouter(prefix="/v1/detections", tags=["detections"])
logger = get_logger(__name__)


class DetectionIn(BaseModel):
    class_name: str = Field(..., alias="class", min_length=1)
    score: float = Field(..., ge=0.0, le=1.0)
    bbox: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)


class DetectionBatch(BaseModel):
    detections: List[DetectionIn] = Field(default_factory=list)
    timestamp: Optional[float] = None


class WasteItemOut(BaseModel):
    type: str
    timestamp: float
    confidence: float
    category: str


class CategorySummaryOut(BaseModel):
    category: str
    count: int
    items: List[str]
    last_detected: float
    tip: str


class SessionItemsResponse(BaseModel):
    session_id: str
    items: List[WasteItemOut]
    breakdown: List[CategorySummaryOut]


class RecommendationOut(BaseModel):
    title: str
    message: str
    category: str


class InsightsResponse(BaseModel):
    session_id: str
    recommendations: List[RecommendationOut]
    tips: List[str]


def _item_out(item: WasteItem) -> WasteItemOut:
    return WasteItemOut(
        type=item.type,
        timestamp=item.timestamp,
        confidence=item.confidence,
        category=item.category.value,
    )


def _session_response(session_id: str, items: List[WasteItem]) -> SessionItemsResponse:
    return SessionItemsResponse(
        session_id=session_id,
        items=[_item_out(item) for item in items],
        breakdown=[CategorySummaryOut(**s.to_dict()) for s in category_breakdown(items)],
    )


@router.post("/{session_id}", response_model=List[WasteItemOut], status_code=status.HTTP_201_CREATED)
async def add_detections(
    session_id: str,
    batch: DetectionBatch,
    registry: RegistryDep,
) -> List[WasteItemOut]:
    """Filter raw detections and store the waste items that pass."""
    detections = [
        Detection(class_name=d.class_name, score=d.score, bbox=d.bbox)
        for d in batch.detections
    ]
    kept = filter_waste_detections(detections, settings.detection_score_threshold)
    items = detections_to_items(kept, batch.timestamp if batch.timestamp is not None else time.time())
    registry.get(session_id).extend(items)
    logger.debug(
        f"Stored {len(items)} of {len(detections)} detections",
        extra=get_log_context(session_id=session_id),
    )
    return [_item_out(item) for item in items]


@router.get("/{session_id}", response_model=SessionItemsResponse)
async def get_detections(session_id: str, registry: RegistryDep) -> SessionItemsResponse:
    return _session_response(session_id, registry.items(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_detections(session_id: str, registry: RegistryDep) -> None:
    store = registry.peek(session_id)
    if store is not None:
        store.clear()


@router.get("/{session_id}/insights", response_model=InsightsResponse)
async def get_insights(session_id: str, registry: RegistryDep) -> InsightsResponse:
    """Recommendations and recycling tips for the session's items."""
    items = registry.items(session_id)
    return InsightsResponse(
        session_id=session_id,
        recommendations=[
            RecommendationOut(title=r.title, message=r.message, category=r.category.value)
            for r in get_recommendations(items)
        ],
        tips=get_recycling_tips(items),
    )
