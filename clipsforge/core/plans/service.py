"""
Plan Service

Resolves a user's plan type to its limits and computes the monthly
usage window.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from clipsforge.config import logger
from clipsforge.core.plans.models import GB, MB, UNLIMITED, Plan

DEFAULT_PLAN_ID = "free"

DEFAULT_PLANS: Dict[str, Plan] = {
    "free": Plan(
        id="free",
        name="Free",
        videos_per_month=1,
        max_file_size_bytes=500 * MB,
        max_duration_minutes=30,
        max_storage_bytes=1 * GB,
        account_limits={
            "tiktok": 1, "instagram": 1, "youtube": 0,
            "twitter": 0, "linkedin": 0, "facebook": 1,
        },
    ),
    "pro": Plan(
        id="pro",
        name="Pro",
        videos_per_month=10,
        max_file_size_bytes=2 * GB,
        max_duration_minutes=120,
        max_storage_bytes=50 * GB,
        account_limits={
            "tiktok": 5, "instagram": 5, "youtube": 3,
            "twitter": 3, "linkedin": 2, "facebook": 3,
        },
    ),
    "agency": Plan(
        id="agency",
        name="Agency",
        videos_per_month=UNLIMITED,
        max_file_size_bytes=5 * GB,
        max_duration_minutes=300,
        max_storage_bytes=500 * GB,
        account_limits={
            "tiktok": 20, "instagram": 20, "youtube": 10,
            "twitter": 10, "linkedin": 5, "facebook": 10,
        },
    ),
}


def next_usage_reset(now: datetime) -> datetime:
    """First instant of the month after ``now`` (UTC)."""
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


class PlanService:
    """Lookup of plan definitions; unknown plan ids resolve to the free plan."""

    def __init__(self, plans: Optional[Dict[str, Plan]] = None):
        self._plans = plans or DEFAULT_PLANS

    def get_plan(self, plan_id: Optional[str]) -> Plan:
        plan = self._plans.get((plan_id or "").lower())
        if plan is None:
            logger.warning("Unknown plan %r, falling back to %s", plan_id, DEFAULT_PLAN_ID)
            plan = self._plans[DEFAULT_PLAN_ID]
        return plan

    def get_account_limit(self, plan_id: Optional[str], platform: str) -> int:
        return self.get_plan(plan_id).account_limit(platform)


_plan_service: Optional[PlanService] = None


def get_plan_service() -> PlanService:
    """Get the global plan service instance."""
    global _plan_service
    if _plan_service is None:
        _plan_service = PlanService()
    return _plan_service
