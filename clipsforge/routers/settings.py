from typing import Any, Dict

from fastapi import APIRouter, Depends

from clipsforge.core import settings as settings_service
from clipsforge.core.firebase_client import get_current_user
from clipsforge.routers.errors import SERVICE_ERRORS, http_error
from clipsforge.schemas import SettingsResponse, SettingsUpdateRequest

router = APIRouter(prefix="/api/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings(
    user: Dict[str, Any] = Depends(get_current_user),
) -> SettingsResponse:
    """Get the profile with plan, usage, limits and processing preferences."""
    try:
        data = settings_service.get_settings(user["uid"], email=user.get("email"))
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return SettingsResponse(**data)


@router.put("", response_model=SettingsResponse)
async def update_settings(
    payload: SettingsUpdateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
) -> SettingsResponse:
    preferences = payload.processing_preferences.overrides() if payload.processing_preferences else None
    try:
        data = settings_service.update_settings(
            user["uid"],
            display_name=payload.display_name,
            preferences=preferences,
        )
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return SettingsResponse(**data)
