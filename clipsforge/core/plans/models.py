"""
Plan Models

Type-safe models for subscription plans and their limits.
"""

import re
from typing import Dict

from pydantic import BaseModel, Field, field_validator

UNLIMITED = -1

MB = 1024 * 1024
GB = 1024 * MB


class Plan(BaseModel):
    """A subscription plan with upload and social-account limits."""

    id: str = Field(..., description="Plan identifier (free, pro, agency)")
    name: str = Field(..., min_length=1, max_length=100)
    videos_per_month: int = Field(..., ge=UNLIMITED, description="-1 means unlimited")
    max_file_size_bytes: int = Field(..., gt=0)
    max_duration_minutes: int = Field(..., gt=0)
    max_storage_bytes: int = Field(..., gt=0)
    account_limits: Dict[str, int] = Field(
        default_factory=dict,
        description="Maximum connected accounts per platform",
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not re.match(r"^[a-z][a-z0-9_-]*$", v.lower()):
            raise ValueError("Plan ID must be lowercase alphanumeric with underscores/hyphens")
        return v.lower()

    @field_validator("account_limits")
    @classmethod
    def validate_account_limits(cls, v: Dict[str, int]) -> Dict[str, int]:
        for key, value in v.items():
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"Account limit '{key}' must be a non-negative integer")
        return {key.lower(): value for key, value in v.items()}

    @property
    def max_file_size_mb(self) -> int:
        return self.max_file_size_bytes // MB

    @property
    def max_duration_seconds(self) -> int:
        return self.max_duration_minutes * 60

    def allows_more_videos(self, used: int) -> bool:
        return self.videos_per_month == UNLIMITED or used < self.videos_per_month

    def account_limit(self, platform: str) -> int:
        return self.account_limits.get(platform.lower(), 0)
