from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from clipsforge.core import social
from clipsforge.core.firebase_client import get_current_user
from clipsforge.core.repositories import SocialAccountRepository, SocialPostRepository
from clipsforge.core.security import check_rate_limit, validate_platform, validate_resource_id
from clipsforge.routers.errors import SERVICE_ERRORS, http_error
from clipsforge.schemas import (
    AccountListResponse,
    AccountResponse,
    AccountSettingsRequest,
    ConnectAccountRequest,
    ConnectAccountResponse,
    PostListResponse,
    PostResponse,
    SchedulePostRequest,
    SchedulePostResponse,
)

router = APIRouter(prefix="/api/social", tags=["Social"])


def _resource_id(value: str, field: str) -> str:
    try:
        return validate_resource_id(value, field=field)
    except SERVICE_ERRORS as e:
        raise http_error(e)


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------

@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(
    platform: Optional[str] = Query(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
) -> AccountListResponse:
    try:
        if platform:
            platform = validate_platform(platform)
        accounts = SocialAccountRepository(user["uid"]).list_accounts(platform=platform)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return AccountListResponse(accounts=accounts)


@router.post("/accounts/connect", response_model=ConnectAccountResponse, status_code=status.HTTP_201_CREATED)
async def connect_account(
    payload: ConnectAccountRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> ConnectAccountResponse:
    """Start linking a social network; returns the Ayrshare link URL when available."""
    uid = user["uid"]
    check_rate_limit(request, user_id=uid)
    try:
        account, link_url = await social.connect_account(uid, payload.platform)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return ConnectAccountResponse(account=account, link_url=link_url, demo_mode=account.is_demo)


@router.post("/accounts/{account_id}/complete", response_model=AccountResponse)
async def complete_oauth(
    account_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
) -> AccountResponse:
    """Confirm with Ayrshare that the user finished linking the account."""
    account_id = _resource_id(account_id, "account_id")
    try:
        account = await social.complete_oauth(user["uid"], account_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return AccountResponse(account=account)


@router.post("/accounts/{account_id}/refresh", response_model=AccountResponse)
async def refresh_account(
    account_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
) -> AccountResponse:
    account_id = _resource_id(account_id, "account_id")
    try:
        account = social.refresh_account(user["uid"], account_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return AccountResponse(account=account)


@router.put("/accounts/{account_id}/settings", response_model=AccountResponse)
async def update_account_settings(
    account_id: str,
    payload: AccountSettingsRequest,
    user: Dict[str, Any] = Depends(get_current_user),
) -> AccountResponse:
    """Update the posting schedule or default hashtags, or pause the account."""
    account_id = _resource_id(account_id, "account_id")
    try:
        account = social.update_account_settings(
            user["uid"],
            account_id,
            posting_schedule=payload.posting_schedule,
            is_active=payload.is_active,
            default_hashtags=payload.default_hashtags,
        )
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return AccountResponse(account=account)


@router.delete("/accounts/{account_id}")
async def disconnect_account(
    account_id: str,
    delete: bool = Query(default=False),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Disconnect the account, or remove it completely with ``?delete=true``."""
    account_id = _resource_id(account_id, "account_id")
    try:
        found = await social.disconnect_account(user["uid"], account_id, delete=delete)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Social account not found")
    return {"success": True, "account_id": account_id, "deleted": delete}


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------

@router.post("/posts", response_model=SchedulePostResponse, status_code=status.HTTP_201_CREATED)
async def schedule_post(
    payload: SchedulePostRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> SchedulePostResponse:
    """Publish a clip now, at the next optimal time, or at a custom time."""
    uid = user["uid"]
    check_rate_limit(request, user_id=uid)
    try:
        result = await social.schedule_post(
            uid,
            payload.clip_id,
            payload.account_ids,
            payload.schedule_type,
            scheduled_for=payload.scheduled_for,
            title=payload.title,
            description=payload.description,
            hashtags=payload.hashtags,
            mentions=payload.mentions,
        )
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return SchedulePostResponse(
        success=any(p.status != "failed" for p in result.posts),
        posts=result.posts,
        errors=result.errors,
    )


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    clip_id: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    user: Dict[str, Any] = Depends(get_current_user),
) -> PostListResponse:
    try:
        if clip_id:
            clip_id = validate_resource_id(clip_id, field="clip_id")
        posts = SocialPostRepository(user["uid"]).list_posts(clip_id=clip_id, status=status_filter, limit=limit)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return PostListResponse(posts=posts)


@router.post("/posts/{post_id}/cancel", response_model=PostResponse)
async def cancel_post(
    post_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
) -> PostResponse:
    post_id = _resource_id(post_id, "post_id")
    try:
        post = await social.cancel_post(user["uid"], post_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return PostResponse(post=post)


@router.post("/posts/{post_id}/metrics", response_model=PostResponse)
async def refresh_post_metrics(
    post_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
) -> PostResponse:
    """Pull the latest engagement numbers for a published post."""
    post_id = _resource_id(post_id, "post_id")
    try:
        post = await social.refresh_post_metrics(user["uid"], post_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return PostResponse(post=post)
