"""Social account repository (``users/{uid}/social_accounts``)."""

import logging
from typing import List, Optional

from google.cloud import firestore

from clipsforge.core.repositories.base import UserScopedRepository, utcnow
from clipsforge.core.repositories.exceptions import SocialAccountRepositoryError
from clipsforge.core.repositories.models import SocialAccount

logger = logging.getLogger(__name__)


class SocialAccountRepository(UserScopedRepository[SocialAccount]):
    collection_name = "social_accounts"
    id_field = "account_id"
    model = SocialAccount
    error_class = SocialAccountRepositoryError

    def get_account(self, account_id: str) -> Optional[SocialAccount]:
        return self.get(account_id)

    def list_accounts(
        self,
        platform: Optional[str] = None,
        active_only: bool = False,
    ) -> List[SocialAccount]:
        filters = []
        if platform:
            filters.append(("platform", "==", platform))
        if active_only:
            filters.append(("is_active", "==", True))
        accounts = self.query(filters)
        accounts.sort(key=lambda a: a.created_at)
        return accounts

    def get_accounts(self, account_ids: List[str], active_only: bool = True) -> List[SocialAccount]:
        """Fetch several accounts by id, skipping missing or inactive ones."""
        accounts = []
        for account_id in account_ids:
            account = self.get(account_id)
            if account is None:
                continue
            if active_only and not account.is_active:
                continue
            accounts.append(account)
        return accounts

    def count_active(self, platform: str) -> int:
        return len(self.list_accounts(platform=platform, active_only=True))

    def find_by_username(self, platform: str, username: str) -> Optional[SocialAccount]:
        matches = self.query([("platform", "==", platform), ("username", "==", username)], limit=1)
        return matches[0] if matches else None

    def record_post(self, account_id: str) -> bool:
        now = utcnow()
        return self.update(
            account_id,
            {"total_posts": firestore.Increment(1), "last_post_at": now},
        )
