"""
Social publishing: account connection, post scheduling and timing rules.
"""

from clipsforge.core.social.accounts import (
    complete_oauth,
    connect_account,
    disconnect_account,
    refresh_account,
    update_account_settings,
)
from clipsforge.core.social.content import build_post_content, max_length_for
from clipsforge.core.social.scheduler import (
    ScheduleResult,
    cancel_post,
    refresh_post_metrics,
    schedule_post,
)
from clipsforge.core.social.timing import next_optimal_time, posting_limit_violation

__all__ = [
    "ScheduleResult",
    "build_post_content",
    "cancel_post",
    "complete_oauth",
    "connect_account",
    "disconnect_account",
    "max_length_for",
    "next_optimal_time",
    "posting_limit_violation",
    "refresh_account",
    "refresh_post_metrics",
    "schedule_post",
    "update_account_settings",
]
