"""
When to post.

Optimal times come from per-network engagement hours, evaluated in the
account's own timezone. Posting limits (posts per day, spacing between posts)
come from the account's posting schedule.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clipsforge.core.repositories import SocialPostRepository
from clipsforge.core.repositories.models import PostingSchedule, SocialAccount

logger = logging.getLogger(__name__)

OPTIMAL_HOURS = {
    "tiktok": [6, 10, 19, 22],
    "instagram": [8, 12, 17, 20],
    "youtube": [14, 16, 20],
    "twitter": [9, 12, 15, 18],
    "linkedin": [8, 12, 17],
    "facebook": [9, 13, 16, 20],
}
DEFAULT_OPTIMAL_HOURS = [12]


def account_zone(schedule: PostingSchedule) -> ZoneInfo:
    try:
        return ZoneInfo(schedule.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {schedule.timezone!r}, using UTC")
        return ZoneInfo("UTC")


def next_optimal_time(
    platform: str,
    schedule: PostingSchedule,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> datetime:
    """
    Next engagement hour for ``platform`` after ``now``, in UTC.

    The first optimal hour later than the current local hour is used; after
    the last one the time rolls over to the first hour of the next day.
    Days missing from ``schedule.days`` are skipped. Up to
    ``randomize_minutes`` is added so posts do not land on the exact hour.
    """
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    zone = account_zone(schedule)
    local = now.astimezone(zone)

    hours = OPTIMAL_HOURS.get(platform.lower(), DEFAULT_OPTIMAL_HOURS)
    later = [h for h in hours if h > local.hour]
    day = local.date()
    if later:
        hour = later[0]
    else:
        hour = hours[0]
        day += timedelta(days=1)

    # isoweekday: Monday is 1
    for _ in range(7):
        if day.isoweekday() in schedule.days:
            break
        day += timedelta(days=1)
        hour = hours[0]

    target = datetime(day.year, day.month, day.day, hour, tzinfo=zone)
    if schedule.randomize_minutes > 0:
        target += timedelta(minutes=rng.randint(0, schedule.randomize_minutes))
    return target.astimezone(timezone.utc)


def posting_limit_violation(
    posts: SocialPostRepository,
    account: SocialAccount,
    scheduled_for: datetime,
) -> Optional[str]:
    """
    Check the account's daily cap and minimum spacing.

    Returns:
        A human readable reason when the post is not allowed, otherwise None.
    """
    schedule = account.posting_schedule
    zone = account_zone(schedule)

    local = scheduled_for.astimezone(zone)
    day_start = datetime(local.year, local.month, local.day, tzinfo=zone)
    day_end = day_start + timedelta(days=1) - timedelta(microseconds=1)
    same_day = posts.list_for_account_between(
        account.account_id,
        day_start.astimezone(timezone.utc),
        day_end.astimezone(timezone.utc),
    )
    if len(same_day) >= schedule.max_posts_per_day:
        return f"Daily limit of {schedule.max_posts_per_day} posts reached for this account"

    if schedule.min_interval_minutes > 0:
        interval = timedelta(minutes=schedule.min_interval_minutes)
        nearby = posts.list_for_account_between(
            account.account_id,
            scheduled_for - interval,
            scheduled_for + interval,
        )
        if nearby:
            return f"Posts must be at least {schedule.min_interval_minutes} minutes apart"

    return None
