from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from clipsforge.core import analytics
from clipsforge.core.firebase_client import get_current_user
from clipsforge.routers.errors import SERVICE_ERRORS, http_error

router = APIRouter(prefix="/api", tags=["Analytics"])


@router.get("/analytics")
async def get_analytics(
    period: str = Query(default="month"),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Dashboard metrics for the last day, week, month or year."""
    try:
        return analytics.get_analytics(user["uid"], period)
    except SERVICE_ERRORS as e:
        raise http_error(e)
