"""
Publishing clips to connected social accounts.

A post record is written before Ayrshare is called so every attempt is
tracked. Immediate posts that Ayrshare rejects are marked ``failed``.
Scheduled posts that Ayrshare rejects stay ``scheduled`` with a
``failure_reason`` so they can be retried.
"""

import logging
import random
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from clipsforge.core.ayrshare_client import AyrshareClient
from clipsforge.core.exceptions import ProviderError, SchedulingError
from clipsforge.core.repositories import (
    ClipRepository,
    NotFoundError,
    SocialAccountRepository,
    SocialPostRepository,
)
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import ClipRecord, SocialAccount, SocialPost
from clipsforge.core.security import validate_schedule_type
from clipsforge.core.social.content import build_post_content, normalize_hashtags, normalize_mentions
from clipsforge.core.social.timing import next_optimal_time, posting_limit_violation

logger = logging.getLogger(__name__)

DEMO_POST_PREFIX = "demo_"


@dataclass
class ScheduleResult:
    posts: List[SocialPost] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)


def resolve_post_time(
    schedule_type: str,
    account: SocialAccount,
    scheduled_for: Optional[datetime],
    now: datetime,
    rng: Optional[random.Random] = None,
) -> datetime:
    if schedule_type == "now":
        return now
    if schedule_type == "custom":
        if scheduled_for is None:
            raise SchedulingError("scheduled_for is required for custom scheduling")
        if scheduled_for.tzinfo is None:
            scheduled_for = scheduled_for.replace(tzinfo=timezone.utc)
        if scheduled_for <= now:
            raise SchedulingError("scheduled_for must be in the future")
        return scheduled_for
    return next_optimal_time(account.platform, account.posting_schedule, now=now, rng=rng)


def _group_by_platform(accounts: Iterable[SocialAccount]) -> "OrderedDict[str, List[SocialAccount]]":
    groups: "OrderedDict[str, List[SocialAccount]]" = OrderedDict()
    for account in accounts:
        groups.setdefault(account.platform, []).append(account)
    return groups


def _platform_post_url(result: Dict[str, Any], platform: str) -> Optional[str]:
    for entry in result.get("postIds") or []:
        if isinstance(entry, dict) and entry.get("platform") == platform:
            return entry.get("postUrl")
    return None


def build_ayrshare_payload(
    content: str,
    platform: str,
    clip: ClipRecord,
    account: SocialAccount,
    scheduled_for: Optional[datetime],
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "post": content,
        "platforms": [platform],
        "mediaUrls": [clip.url] if clip.url else [],
        "profileKeys": [account.ayrshare_profile_key] if account.ayrshare_profile_key else [],
        "isVideo": True,
        "autoHashtag": False,
        "shortenLinks": True,
    }
    if clip.thumbnail_url:
        payload["thumbnailUrl"] = clip.thumbnail_url
    if scheduled_for is not None:
        payload["scheduleDate"] = scheduled_for.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return payload


async def _publish(
    post: SocialPost,
    clip: ClipRecord,
    account: SocialAccount,
    ayrshare: AyrshareClient,
    immediate: bool,
) -> Dict[str, Any]:
    """Send one post to Ayrshare and return the fields to store on the record."""
    now = utcnow()
    if account.is_demo or not ayrshare.configured:
        fields: Dict[str, Any] = {"ayrshare_post_id": f"{DEMO_POST_PREFIX}{post.post_id}"}
        if immediate:
            fields.update(status="posted", posted_at=now)
        return fields

    payload = build_ayrshare_payload(
        post.content,
        post.platform,
        clip,
        account,
        None if immediate else post.scheduled_for,
    )
    try:
        result = await ayrshare.post(payload)
    except ProviderError as e:
        logger.warning(f"Ayrshare rejected post {post.post_id} for account {account.account_id}: {e}")
        if immediate:
            return {"status": "failed", "failure_reason": e.message}
        return {"status": "scheduled", "failure_reason": f"Ayrshare schedule pending: {e.message}"}

    fields = {"ayrshare_post_id": result.get("id"), "failure_reason": None}
    if immediate:
        fields.update(
            status="posted",
            posted_at=now,
            platform_post_url=_platform_post_url(result, post.platform),
        )
    else:
        fields["status"] = "scheduled"
    return fields


async def schedule_post(
    user_id: str,
    clip_id: str,
    account_ids: List[str],
    schedule_type: str,
    scheduled_for: Optional[datetime] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    hashtags: Iterable[str] = (),
    mentions: Iterable[str] = (),
    *,
    clips: Optional[ClipRepository] = None,
    accounts: Optional[SocialAccountRepository] = None,
    posts: Optional[SocialPostRepository] = None,
    ayrshare: Optional[AyrshareClient] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> ScheduleResult:
    """
    Post or schedule ``clip_id`` on each of ``account_ids``.

    Accounts that hit their posting limits are reported in
    ``ScheduleResult.errors`` and skipped; the others are processed.
    """
    schedule_type = validate_schedule_type(schedule_type)
    clips = clips or ClipRepository(user_id)
    accounts = accounts or SocialAccountRepository(user_id)
    posts = posts or SocialPostRepository(user_id)
    ayrshare = ayrshare or AyrshareClient()
    now = now or utcnow()

    clip = clips.get_clip(clip_id)
    if clip is None:
        raise NotFoundError(f"Clip {clip_id} not found")
    if clip.status != "ready":
        raise SchedulingError("Clip is not ready to be posted yet")

    targets = accounts.get_accounts(account_ids, active_only=True)
    if not targets:
        raise NotFoundError("No active social accounts found")

    hashtag_list = normalize_hashtags(hashtags)
    mention_list = normalize_mentions(mentions)
    immediate = schedule_type == "now"
    result = ScheduleResult()

    for platform, group in _group_by_platform(targets).items():
        for account in group:
            when = resolve_post_time(schedule_type, account, scheduled_for, now, rng)

            reason = posting_limit_violation(posts, account, when)
            if reason:
                result.errors.append({"account_id": account.account_id, "error": reason})
                continue

            if not immediate and when <= now:
                result.errors.append({"account_id": account.account_id, "error": "Scheduled time is in the past"})
                continue

            tags = normalize_hashtags([*(hashtag_list or clip.hashtags), *account.default_hashtags])
            record = SocialPost(
                post_id=uuid.uuid4().hex,
                user_id=user_id,
                clip_id=clip.clip_id,
                video_id=clip.video_id,
                social_account_id=account.account_id,
                platform=platform,
                content=build_post_content(
                    platform,
                    title or clip.title,
                    description if description is not None else clip.description,
                    tags,
                    mention_list,
                ),
                hashtags=tags,
                mentions=mention_list,
                status="posting" if immediate else "scheduled",
                schedule_type=schedule_type,
                scheduled_for=when,
                created_at=now,
                updated_at=now,
            )
            posts.create(record)

            fields = await _publish(record, clip, account, ayrshare, immediate)
            posts.update(record.post_id, fields)
            record = record.model_copy(update=fields)

            if record.status == "failed":
                result.errors.append({"account_id": account.account_id, "error": record.failure_reason or "Post failed"})
            else:
                accounts.record_post(account.account_id)
            result.posts.append(record)

    delivered = sum(1 for p in result.posts if p.status != "failed")
    if delivered:
        clips.increment_posts(clip.clip_id, delivered)

    logger.info(
        f"Clip {clip_id}: {delivered} post(s) {schedule_type}, {len(result.errors)} error(s)"
    )
    return result


async def cancel_post(
    user_id: str,
    post_id: str,
    *,
    posts: Optional[SocialPostRepository] = None,
    accounts: Optional[SocialAccountRepository] = None,
    ayrshare: Optional[AyrshareClient] = None,
) -> SocialPost:
    """Cancel a scheduled post. Removing it from Ayrshare is best-effort."""
    posts = posts or SocialPostRepository(user_id)
    accounts = accounts or SocialAccountRepository(user_id)
    ayrshare = ayrshare or AyrshareClient()

    post = posts.get_post(post_id)
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    if post.status != "scheduled":
        raise SchedulingError(f"Only scheduled posts can be cancelled (status is {post.status})")

    remote_id = post.ayrshare_post_id
    if remote_id and not remote_id.startswith(DEMO_POST_PREFIX) and ayrshare.configured:
        account = accounts.get_account(post.social_account_id)
        try:
            await ayrshare.delete_post(remote_id, profile_key=account.ayrshare_profile_key if account else None)
        except ProviderError as e:
            logger.warning(f"Failed to delete Ayrshare post {remote_id}: {e}")

    posts.update(post_id, {"status": "cancelled"})
    logger.info(f"Cancelled post {post_id}")
    return post.model_copy(update={"status": "cancelled"})


def _metric(data: Dict[str, Any], *keys: str) -> int:
    for key in keys:
        value = data.get(key)
        if isinstance(value, (int, float)):
            return int(value)
    return 0


async def refresh_post_metrics(
    user_id: str,
    post_id: str,
    *,
    posts: Optional[SocialPostRepository] = None,
    accounts: Optional[SocialAccountRepository] = None,
    ayrshare: Optional[AyrshareClient] = None,
) -> SocialPost:
    """Pull views, likes, comments and shares for a published post."""
    posts = posts or SocialPostRepository(user_id)
    accounts = accounts or SocialAccountRepository(user_id)
    ayrshare = ayrshare or AyrshareClient()

    post = posts.get_post(post_id)
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    remote_id = post.ayrshare_post_id
    if post.status != "posted" or not remote_id or remote_id.startswith(DEMO_POST_PREFIX) or not ayrshare.configured:
        return post

    account = accounts.get_account(post.social_account_id)
    body = await ayrshare.post_analytics(
        remote_id,
        [post.platform],
        profile_key=account.ayrshare_profile_key if account else None,
    )
    stats = (body.get(post.platform) or {}).get("analytics") or {}
    fields = {
        "views": _metric(stats, "views", "videoViews", "viewCount", "impressions"),
        "likes": _metric(stats, "likes", "likeCount", "likesCount", "reactions"),
        "comments": _metric(stats, "comments", "commentCount", "commentsCount"),
        "shares": _metric(stats, "shares", "shareCount", "sharesCount", "retweetCount"),
    }
    posts.update(post_id, fields)
    return post.model_copy(update=fields)
