"""FastAPI dependencies for application-scoped services.

The advice gateway and the detection registry are created once in the
application lifespan and stored on ``app.state``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from ewaste.app.services.advice import AdviceGateway
from ewaste.app.services.detection import DetectionStoreRegistry


def get_advice_gateway(request: Request) -> AdviceGateway:
    gateway = getattr(request.app.state, "advice_gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Advice service is not initialized",
        )
    return gateway


def get_detection_registry(request: Request) -> DetectionStoreRegistry:
    registry = getattr(request.app.state, "detection_registry", None)
    if registry is None:
        registry = DetectionStoreRegistry()
        request.app.state.detection_registry = registry
    return registry


GatewayDep = Annotated[AdviceGateway, Depends(get_advice_gateway)]
RegistryDep = Annotated[DetectionStoreRegistry, Depends(get_detection_registry)]
