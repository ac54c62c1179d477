"""
Profile repository.

The profile is the ``users/{uid}`` document itself: plan, monthly usage
counters and processing preferences.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from google.cloud import firestore

from clipsforge.core.firebase_client import get_firestore_client
from clipsforge.core.plans import next_usage_reset
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.exceptions import ProfileRepositoryError, ValidationError
from clipsforge.core.repositories.models import Profile

logger = logging.getLogger(__name__)


class ProfileRepository:
    """Reads and updates the profile stored on the user document."""

    def __init__(self, user_id: str, db: Optional[Any] = None):
        if not user_id or not isinstance(user_id, str) or len(user_id) > 128:
            raise ValidationError("Invalid user_id")
        self.user_id = user_id
        self.db = db if db is not None else get_firestore_client()
        self.doc_ref = self.db.collection("users").document(user_id)

    def get_or_create(self, email: Optional[str] = None, display_name: Optional[str] = None) -> Profile:
        """Load the profile, creating a free-plan profile on first access."""
        try:
            snap = self.doc_ref.get()
            if not snap.exists:
                now = utcnow()
                profile = Profile(
                    user_id=self.user_id,
                    email=email,
                    display_name=display_name,
                    usage_reset_date=next_usage_reset(now),
                    created_at=now,
                    updated_at=now,
                )
                self.doc_ref.set(profile.to_dict())
                logger.info(f"Created profile for user {self.user_id}")
                return profile

            data = snap.to_dict() or {}
            data.setdefault("user_id", self.user_id)
            if email and not data.get("email"):
                self.doc_ref.update({"email": email})
                data["email"] = email
            data.setdefault("usage_reset_date", next_usage_reset(utcnow()))
            data.setdefault("created_at", utcnow())
            data.setdefault("updated_at", utcnow())
            return Profile.from_dict(data)
        except Exception as e:
            logger.error(f"Failed to load profile {self.user_id}: {e}", exc_info=True)
            raise ProfileRepositoryError(f"Failed to load profile: {e}") from e

    def update(self, fields: Dict[str, Any]) -> None:
        try:
            self.doc_ref.update({**fields, "updated_at": utcnow()})
        except Exception as e:
            logger.error(f"Failed to update profile {self.user_id}: {e}", exc_info=True)
            raise ProfileRepositoryError(f"Failed to update profile: {e}") from e

    def reset_monthly_usage(self, next_reset: datetime) -> None:
        self.update({"usage_videos_current_month": 0, "usage_reset_date": next_reset})

    def record_upload(self, file_size_bytes: int) -> None:
        self.update({
            "usage_videos_current_month": firestore.Increment(1),
            "usage_storage_bytes": firestore.Increment(file_size_bytes),
        })

    def release_storage(self, file_size_bytes: int) -> None:
        if file_size_bytes > 0:
            self.update({"usage_storage_bytes": firestore.Increment(-file_size_bytes)})
