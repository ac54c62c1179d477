"""
Plan Management Module

Plan definitions (free, pro, agency), their limits and the monthly
usage reset schedule.
"""

from clipsforge.core.plans.models import GB, MB, UNLIMITED, Plan
from clipsforge.core.plans.service import (
    DEFAULT_PLANS,
    PlanService,
    get_plan_service,
    next_usage_reset,
)

__all__ = [
    "GB",
    "MB",
    "UNLIMITED",
    "Plan",
    "DEFAULT_PLANS",
    "PlanService",
    "get_plan_service",
    "next_usage_reset",
]
