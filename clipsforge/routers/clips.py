from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from clipsforge.config import logger
from clipsforge.core import clip_generation
from clipsforge.core.firebase_client import get_current_user
from clipsforge.core.repositories import ClipRepository
from clipsforge.core.security import check_rate_limit, validate_video_id
from clipsforge.routers.errors import SERVICE_ERRORS, http_error
from clipsforge.routers.processing import resolve_preferences
from clipsforge.schemas import (
    ClipListResponse,
    ClipResponse,
    ManualClipRequest,
    RegenerateClipsRequest,
    RenderStatusResponse,
)

router = APIRouter(prefix="/api", tags=["Clips"])


@router.get("/clips", response_model=ClipListResponse)
async def list_clips(
    video_id: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user: Dict[str, Any] = Depends(get_current_user),
) -> ClipListResponse:
    try:
        if video_id:
            video_id = validate_video_id(video_id)
        clips = ClipRepository(user["uid"]).list_clips(video_id=video_id, status=status_filter)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return ClipListResponse(clips=clips)


@router.post("/videos/{video_id}/clips/regenerate", response_model=ClipListResponse)
async def regenerate_clips(
    video_id: str,
    request: Request,
    payload: Optional[RegenerateClipsRequest] = None,
    user: Dict[str, Any] = Depends(get_current_user),
) -> ClipListResponse:
    """Generate clips again from the stored analysis."""
    uid = user["uid"]
    check_rate_limit(request, user_id=uid)
    payload = payload or RegenerateClipsRequest()
    try:
        video_id = validate_video_id(video_id)
        preferences = resolve_preferences(uid, payload.preferences)
        clips = await clip_generation.regenerate_clips(
            uid,
            video_id,
            preferences,
            keep_existing=payload.keep_existing,
        )
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return ClipListResponse(clips=clips)


@router.post("/clips/manual", response_model=ClipResponse, status_code=status.HTTP_201_CREATED)
async def create_manual_clip(
    payload: ManualClipRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> ClipResponse:
    """Cut a clip from times chosen by the user."""
    uid = user["uid"]
    check_rate_limit(request, user_id=uid)
    try:
        clip = await clip_generation.create_manual_clip(
            uid,
            payload.video_id,
            payload.title,
            payload.start_time,
            payload.end_time,
            subtitles=payload.subtitles,
            platform=payload.platform,
        )
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return ClipResponse(clip=clip)


@router.post("/clips/check-render-status", response_model=RenderStatusResponse)
async def check_render_status(
    user: Dict[str, Any] = Depends(get_current_user),
) -> RenderStatusResponse:
    """Poll Shotstack for every clip of the user that is still rendering."""
    uid = user["uid"]
    try:
        summary = await clip_generation.sync_render_status(uid)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    logger.info("Render status sync for user %s: %s", uid, summary)
    return RenderStatusResponse(**summary)
