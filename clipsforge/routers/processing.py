from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from clipsforge.config import logger
from clipsforge.core.firebase_client import get_current_user, verify_id_token
from clipsforge.core.pipeline import (
    ProgressReporter,
    WebSocketReporter,
    load_processable_video,
    merge_preferences,
    process_video,
)
from clipsforge.core.repositories import ProfileRepository, VideoRepository
from clipsforge.core.repositories.models import ProcessingPreferences
from clipsforge.core.security import (
    check_rate_limit,
    check_ws_rate_limit,
    hash_token,
    log_security_event,
    validate_video_id,
)
from clipsforge.core.websocket_messages import send_error
from clipsforge.routers.errors import SERVICE_ERRORS, http_error
from clipsforge.schemas import (
    PreferencesPayload,
    ProcessVideoRequest,
    ProcessVideoResponse,
    WSProcessRequest,
)

router = APIRouter(tags=["Processing"])


def resolve_preferences(
    uid: str,
    payload: Optional[PreferencesPayload],
    email: Optional[str] = None,
) -> ProcessingPreferences:
    """The profile's saved preferences with the request's overrides applied."""
    profile = ProfileRepository(uid).get_or_create(email=email)
    overrides = payload.overrides() if payload else None
    return merge_preferences(profile.processing_preferences, overrides)


@router.websocket("/ws/process")
async def websocket_process(websocket: WebSocket):
    """Process an uploaded video with real-time progress updates."""
    if not check_ws_rate_limit(websocket):
        await websocket.close(code=1008, reason="Rate limit exceeded")
        return

    await websocket.accept()
    uid: Optional[str] = None

    try:
        raw_data = await websocket.receive_json()

        try:
            request_data = WSProcessRequest.model_validate(raw_data)
        except PydanticValidationError as e:
            errors = e.errors()
            error_msg = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc']) or 'request'}: {err['msg']}"
                for err in errors[:3]
            )
            await send_error(websocket, f"Invalid request: {error_msg}")
            log_security_event(
                "ws_validation_failed",
                request=websocket,
                details={"errors": str(errors)[:500]},
            )
            return

        try:
            decoded = verify_id_token(request_data.token)
        except Exception:
            logger.warning("WebSocket auth failed for token %s", hash_token(request_data.token))
            await send_error(websocket, "Authentication failed")
            log_security_event("ws_auth_failed", request=websocket)
            return

        uid = decoded.get("uid")
        if not uid:
            await send_error(websocket, "Invalid authentication payload")
            return

        video_id = request_data.video_id
        try:
            load_processable_video(VideoRepository(uid), video_id)
            preferences = resolve_preferences(uid, request_data.preferences, decoded.get("email"))
        except SERVICE_ERRORS as e:
            await send_error(websocket, http_error(e).detail)
            return

        logger.info("WebSocket processing started for user %s video %s", uid, video_id)
        await process_video(uid, video_id, WebSocketReporter(websocket, video_id), preferences)

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected for user %s", uid or "unknown")
    except Exception as e:
        logger.exception("WebSocket error for user %s: %s", uid or "unknown", e)
        # Internal errors are not exposed to the client
        await send_error(websocket, "An error occurred while processing your video. Please try again.")


@router.post(
    "/api/videos/{video_id}/process",
    response_model=ProcessVideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def process_in_background(
    video_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Optional[ProcessVideoRequest] = None,
    user: Dict[str, Any] = Depends(get_current_user),
) -> ProcessVideoResponse:
    """Start processing without a WebSocket; poll the video for its status."""
    uid = user["uid"]
    check_rate_limit(request, user_id=uid)
    try:
        video_id = validate_video_id(video_id)
        load_processable_video(VideoRepository(uid), video_id)
        preferences = resolve_preferences(uid, payload.preferences if payload else None, user.get("email"))
    except SERVICE_ERRORS as e:
        raise http_error(e)

    background_tasks.add_task(process_video, uid, video_id, ProgressReporter(video_id), preferences)
    logger.info("Queued background processing for user %s video %s", uid, video_id)
    return ProcessVideoResponse(video_id=video_id, status="queued", message="Processing started")
