"""
Profile settings: plan, usage, limits and processing preferences.
"""

import logging
from typing import Any, Dict, Optional

from clipsforge.core.pipeline.processor import merge_preferences
from clipsforge.core.plans import UNLIMITED, MB, PlanService, get_plan_service
from clipsforge.core.plans.models import Plan
from clipsforge.core.repositories import ProfileRepository
from clipsforge.core.repositories.models import Profile
from clipsforge.core.uploads import ensure_usage_window

logger = logging.getLogger(__name__)


def _remaining(limit: int, used: int) -> Optional[int]:
    if limit == UNLIMITED:
        return None
    return max(limit - used, 0)


def plan_usage(plan: Plan, profile: Profile) -> Dict[str, Any]:
    """Usage counters next to the plan limits they count against."""
    storage_percent = round(profile.usage_storage_bytes / plan.max_storage_bytes * 100, 1)
    return {
        "videos_this_month": profile.usage_videos_current_month,
        "videos_remaining": _remaining(plan.videos_per_month, profile.usage_videos_current_month),
        "storage_bytes": profile.usage_storage_bytes,
        "storage_mb": round(profile.usage_storage_bytes / MB, 1),
        "storage_percent": min(storage_percent, 100.0),
        "reset_date": profile.usage_reset_date.isoformat(),
    }


def plan_limits(plan: Plan) -> Dict[str, Any]:
    return {
        "videos_per_month": None if plan.videos_per_month == UNLIMITED else plan.videos_per_month,
        "max_file_size_mb": plan.max_file_size_mb,
        "max_duration_minutes": plan.max_duration_minutes,
        "max_storage_mb": plan.max_storage_bytes // MB,
        "social_accounts": dict(plan.account_limits),
    }


def get_settings(
    user_id: str,
    email: Optional[str] = None,
    *,
    profiles: Optional[ProfileRepository] = None,
    plans: Optional[PlanService] = None,
) -> Dict[str, Any]:
    profiles = profiles or ProfileRepository(user_id)
    plans = plans or get_plan_service()

    profile = ensure_usage_window(profiles, profiles.get_or_create(email=email))
    plan = plans.get_plan(profile.plan_type)
    return {
        "profile": {
            "user_id": profile.user_id,
            "email": profile.email,
            "display_name": profile.display_name,
            "created_at": profile.created_at.isoformat(),
        },
        "plan": {"id": plan.id, "name": plan.name},
        "usage": plan_usage(plan, profile),
        "limits": plan_limits(plan),
        "processing_preferences": profile.processing_preferences.model_dump(),
    }


def update_settings(
    user_id: str,
    display_name: Optional[str] = None,
    preferences: Optional[Dict[str, Any]] = None,
    *,
    profiles: Optional[ProfileRepository] = None,
    plans: Optional[PlanService] = None,
) -> Dict[str, Any]:
    """Update the display name and/or processing preferences (partial)."""
    profiles = profiles or ProfileRepository(user_id)

    fields: Dict[str, Any] = {}
    if display_name is not None:
        fields["display_name"] = display_name or None
    if preferences:
        current = profiles.get_or_create().processing_preferences
        fields["processing_preferences"] = merge_preferences(current, preferences).model_dump()

    if fields:
        profiles.update(fields)
        logger.info(f"Updated settings for user {user_id}: {', '.join(sorted(fields))}")
    return get_settings(user_id, profiles=profiles, plans=plans)
