"""
Lifelog API Routers.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from . import event
from .event.schema import Envelope

router = APIRouter()


@router.get("/health", response_class=JSONResponse)
async def api_health():
    return Envelope.ok("Alive!").model_dump(mode="json")


router.include_router(event.router)

__all__ = ["router", "event"]
