from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from clipsforge.config import logger
from clipsforge.core import uploads
from clipsforge.core.firebase_client import get_current_user
from clipsforge.core.repositories import ClipRepository, VideoRepository
from clipsforge.core.security import check_rate_limit, validate_video_id
from clipsforge.routers.errors import SERVICE_ERRORS, http_error
from clipsforge.schemas import (
    DeleteVideoResponse,
    UploadConfirmRequest,
    UploadInitRequest,
    UploadInitResponse,
    VideoDetailResponse,
    VideoListResponse,
)

router = APIRouter(prefix="/api", tags=["Videos"])


def _video_id(video_id: str) -> str:
    try:
        return validate_video_id(video_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/videos/upload", response_model=UploadInitResponse, status_code=status.HTTP_201_CREATED)
async def init_upload(
    payload: UploadInitRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> UploadInitResponse:
    """Check plan limits, create the video record and sign the Cloudinary upload."""
    uid = user["uid"]
    check_rate_limit(request, user_id=uid)
    try:
        ticket = uploads.init_upload(
            uid,
            payload.filename,
            payload.content_type,
            payload.file_size_bytes,
            payload.title,
            email=user.get("email"),
        )
    except SERVICE_ERRORS as e:
        raise http_error(e)

    return UploadInitResponse(
        video_id=ticket.video.video_id,
        demo_mode=ticket.demo_mode,
        upload_url=ticket.upload_url,
        upload_params=ticket.upload_params,
        video=ticket.video,
    )


@router.post("/videos/{video_id}/confirm", response_model=VideoDetailResponse)
async def confirm_upload(
    video_id: str,
    payload: UploadConfirmRequest,
    user: Dict[str, Any] = Depends(get_current_user),
) -> VideoDetailResponse:
    """Store the Cloudinary upload result reported by the browser."""
    video_id = _video_id(video_id)
    try:
        video = uploads.confirm_upload(user["uid"], video_id, payload.upload_result())
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return VideoDetailResponse(video=video)


@router.get("/videos", response_model=VideoListResponse)
async def list_videos(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    user: Dict[str, Any] = Depends(get_current_user),
) -> VideoListResponse:
    try:
        videos = VideoRepository(user["uid"]).list_videos(status=status_filter, limit=limit)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return VideoListResponse(videos=videos)


@router.get("/videos/{video_id}", response_model=VideoDetailResponse)
async def get_video(
    video_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
) -> VideoDetailResponse:
    """Get a video with its analysis and clips."""
    video_id = _video_id(video_id)
    uid = user["uid"]
    try:
        repo = VideoRepository(uid)
        video = repo.get_video(video_id)
        if video is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
        analysis = repo.get_analysis(video_id)
        clips = ClipRepository(uid).list_clips(video_id=video_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return VideoDetailResponse(video=video, analysis=analysis, clips=clips)


@router.delete("/videos/{video_id}", response_model=DeleteVideoResponse)
async def delete_video(
    video_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
) -> DeleteVideoResponse:
    """Delete a video, its clips, its analysis and its stored media."""
    video_id = _video_id(video_id)
    uid = user["uid"]
    try:
        deleted = await uploads.delete_video(uid, video_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    logger.info("User %s deleted video %s", uid, video_id)
    return DeleteVideoResponse(success=True, video_id=video_id, message="Video deleted")
