"""Waste category lookup endpoint."""

from fastapi import APIRouter
from pydantic import BaseModel

from ewaste.app.services.categories import WasteClassifier

router = APIRouter(prefix="/v1/categories", tags=["categories"])


class CategoryResponse(BaseModel):
    label: str
    category: str
    tip: str


@router.get("/{label}", response_model=CategoryResponse)
async def classify_label(label: str) -> CategoryResponse:
    category = WasteClassifier.classify(label)
    return CategoryResponse(label=label, category=category.value, tip=WasteClassifier.tip_for(category))
