"""Social post repository (``users/{uid}/social_posts``)."""

import logging
from datetime import datetime
from typing import List, Optional

from clipsforge.core.repositories.base import UserScopedRepository
from clipsforge.core.repositories.exceptions import SocialPostRepositoryError, ValidationError
from clipsforge.core.repositories.models import POST_STATUSES, SocialPost

logger = logging.getLogger(__name__)


class SocialPostRepository(UserScopedRepository[SocialPost]):
    collection_name = "social_posts"
    id_field = "post_id"
    model = SocialPost
    error_class = SocialPostRepositoryError

    def get_post(self, post_id: str) -> Optional[SocialPost]:
        return self.get(post_id)

    def list_posts(
        self,
        clip_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SocialPost]:
        """List posts, most recently scheduled first."""
        if status and status not in POST_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        filters = []
        if clip_id:
            filters.append(("clip_id", "==", clip_id))
        if status:
            filters.append(("status", "==", status))
        posts = self.query(filters)
        posts.sort(key=lambda p: p.scheduled_for, reverse=True)
        return posts[:limit] if limit else posts

    def list_for_account_between(
        self,
        account_id: str,
        start: datetime,
        end: datetime,
        include_cancelled: bool = False,
    ) -> List[SocialPost]:
        posts = self.query([
            ("social_account_id", "==", account_id),
            ("scheduled_for", ">=", start),
            ("scheduled_for", "<=", end),
        ])
        if not include_cancelled:
            posts = [p for p in posts if p.status != "cancelled"]
        return posts

    def list_created_between(self, start: datetime, end: datetime) -> List[SocialPost]:
        return self.query([("created_at", ">=", start), ("created_at", "<=", end)])
