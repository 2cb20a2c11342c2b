"""API endpoints package."""

from ewaste.app.api.advice import router as advice_router
from ewaste.app.api.categories import router as categories_router
from ewaste.app.api.detections import router as detections_router
from ewaste.app.api.marketplace import router as marketplace_router
from ewaste.app.api.meetings import router as meetings_router
from ewaste.app.api.waste_data import router as waste_data_router

__all__ = [
    "advice_router",
    "categories_router",
    "detections_router",
    "marketplace_router",
    "meetings_router",
    "waste_data_router",
]
