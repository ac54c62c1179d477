"""
Connecting social accounts through Ayrshare.

Connecting is two-step: :func:`connect_account` creates an Ayrshare
profile (and a hosted linking URL) and stores a ``pending`` account; once the
user has linked the network, :func:`complete_oauth` reads the linked
identity back and marks the account ``connected``. Without Ayrshare a demo
account is created already connected.
"""

import logging
import random
import time
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from clipsforge.core.ayrshare_client import AyrshareClient
from clipsforge.core.exceptions import AccountLimitError, DuplicateAccountError, ProviderError
from clipsforge.core.plans import PlanService, get_plan_service
from clipsforge.core.repositories import NotFoundError, ProfileRepository, SocialAccountRepository
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import PostingSchedule, SocialAccount
from clipsforge.core.security import ValidationError, validate_platform
from clipsforge.core.social.content import normalize_hashtags

logger = logging.getLogger(__name__)


def _demo_identity(platform: str) -> Dict[str, Any]:
    return {
        "platform_user_id": f"demo_{platform}_{int(time.time() * 1000)}",
        "username": f"demo_user_{random.randint(0, 999)}",
        "display_name": "Demo User",
        "avatar_url": "https://ui-avatars.com/api/?name=Demo+User&background=random",
    }


async def connect_account(
    user_id: str,
    platform: str,
    *,
    accounts: Optional[SocialAccountRepository] = None,
    profiles: Optional[ProfileRepository] = None,
    plans: Optional[PlanService] = None,
    ayrshare: Optional[AyrshareClient] = None,
) -> Tuple[SocialAccount, Optional[str]]:
    """
    Start connecting a ``platform`` account.

    Returns:
        The stored account and, when Ayrshare JWT settings exist, the URL
        where the user links their social network.

    Raises:
        AccountLimitError: the plan allows no more accounts on this platform.
        DuplicateAccountError: a connection for this platform is already pending.
    """
    platform = validate_platform(platform)
    accounts = accounts or SocialAccountRepository(user_id)
    profiles = profiles or ProfileRepository(user_id)
    plans = plans or get_plan_service()
    ayrshare = ayrshare or AyrshareClient()

    profile = profiles.get_or_create()
    limit = plans.get_account_limit(profile.plan_type, platform)
    existing = accounts.list_accounts(platform=platform, active_only=True)
    if len(existing) >= limit:
        raise AccountLimitError(f"{platform} account limit reached for the {profile.plan_type} plan ({limit})")
    if any(a.connection_status == "pending" for a in existing):
        raise DuplicateAccountError(f"A {platform} connection is already pending; finish or remove it first")

    now = utcnow()
    account = SocialAccount(
        account_id=uuid.uuid4().hex,
        user_id=user_id,
        platform=platform,
        posting_schedule=PostingSchedule(),
        created_at=now,
        updated_at=now,
    )

    link_url: Optional[str] = None
    if ayrshare.configured:
        created = await ayrshare.create_profile(f"{user_id}-{platform}-{account.account_id[:8]}")
        account.ayrshare_profile_key = created.get("profileKey")
        if not account.ayrshare_profile_key:
            raise ProviderError("ayrshare", "profile response has no profileKey")
        link_url = await ayrshare.generate_link_url(account.ayrshare_profile_key)
        account.connection_status = "pending"
    else:
        logger.info(f"Ayrshare not configured, creating demo {platform} account for user {user_id}")
        for key, value in _demo_identity(platform).items():
            setattr(account, key, value)
        account.connection_status = "connected"
        account.is_demo = True

    accounts.create(account)
    logger.info(f"Social account {account.account_id} ({platform}) created as {account.connection_status}")
    return account, link_url


def _linked_identity(user: Dict[str, Any], platform: str) -> Optional[Dict[str, Any]]:
    active = [str(p).lower() for p in user.get("activeSocialAccounts") or []]
    if platform not in active:
        return None
    for entry in user.get("displayNames") or []:
        if isinstance(entry, dict) and str(entry.get("platform", "")).lower() == platform:
            return entry
    return {}


async def complete_oauth(
    user_id: str,
    account_id: str,
    *,
    accounts: Optional[SocialAccountRepository] = None,
    ayrshare: Optional[AyrshareClient] = None,
) -> SocialAccount:
    """Read the linked identity from Ayrshare and mark the account connected."""
    accounts = accounts or SocialAccountRepository(user_id)
    ayrshare = ayrshare or AyrshareClient()

    account = accounts.get_account(account_id)
    if account is None:
        raise NotFoundError(f"Social account {account_id} not found")
    if account.is_demo or not account.ayrshare_profile_key:
        return account

    user = await ayrshare.get_user(account.ayrshare_profile_key)
    identity = _linked_identity(user, account.platform)
    if identity is None:
        message = f"{account.platform} has not been linked yet"
        accounts.update(account_id, {"connection_status": "error", "last_error_message": message})
        return account.model_copy(update={"connection_status": "error", "last_error_message": message})

    username = identity.get("username") or identity.get("displayName")
    if username:
        other = accounts.find_by_username(account.platform, username)
        if other is not None and other.account_id != account_id and other.is_active:
            raise DuplicateAccountError(f"{account.platform} account @{username} is already connected")

    fields = {
        "connection_status": "connected",
        "username": username,
        "display_name": identity.get("displayName") or username,
        "avatar_url": identity.get("userImage"),
        "platform_user_id": identity.get("id") or username,
        "last_error_message": None,
        "last_refreshed_at": utcnow(),
    }
    accounts.update(account_id, fields)
    logger.info(f"Social account {account_id} connected as @{username}")
    return account.model_copy(update=fields)


def refresh_account(
    user_id: str,
    account_id: str,
    *,
    accounts: Optional[SocialAccountRepository] = None,
) -> SocialAccount:
    accounts = accounts or SocialAccountRepository(user_id)
    account = accounts.get_account(account_id)
    if account is None:
        raise NotFoundError(f"Social account {account_id} not found")

    fields = {
        "connection_status": "connected",
        "last_refreshed_at": utcnow(),
        "last_error_message": None,
    }
    accounts.update(account_id, fields)
    return account.model_copy(update=fields)


def update_account_settings(
    user_id: str,
    account_id: str,
    posting_schedule: Optional[Dict[str, Any]] = None,
    is_active: Optional[bool] = None,
    default_hashtags: Optional[List[str]] = None,
    *,
    accounts: Optional[SocialAccountRepository] = None,
) -> SocialAccount:
    """Change the posting schedule (partial), the default hashtags, or pause/resume the account."""
    accounts = accounts or SocialAccountRepository(user_id)
    account = accounts.get_account(account_id)
    if account is None:
        raise NotFoundError(f"Social account {account_id} not found")

    changes: Dict[str, Any] = {}
    if posting_schedule:
        merged = {**account.posting_schedule.model_dump(), **posting_schedule}
        try:
            changes["posting_schedule"] = PostingSchedule.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(e.errors()[0].get("msg", "Invalid posting schedule"), field="posting_schedule") from e
    if default_hashtags is not None:
        changes["default_hashtags"] = normalize_hashtags(default_hashtags)
    if is_active is not None:
        changes["is_active"] = is_active
    if not changes:
        return account

    stored = dict(changes)
    if "posting_schedule" in stored:
        stored["posting_schedule"] = stored["posting_schedule"].model_dump()
    accounts.update(account_id, stored)
    return account.model_copy(update=changes)


async def disconnect_account(
    user_id: str,
    account_id: str,
    delete: bool = False,
    *,
    accounts: Optional[SocialAccountRepository] = None,
    ayrshare: Optional[AyrshareClient] = None,
) -> bool:
    """
    Disconnect an account, or delete it entirely with ``delete=True``.

    The Ayrshare profile is removed on a best-effort basis.
    """
    accounts = accounts or SocialAccountRepository(user_id)
    ayrshare = ayrshare or AyrshareClient()

    account = accounts.get_account(account_id)
    if account is None:
        return False

    if account.ayrshare_profile_key and not account.is_demo and ayrshare.configured:
        try:
            await ayrshare.delete_profile(account.ayrshare_profile_key)
        except ProviderError as e:
            logger.warning(f"Failed to delete Ayrshare profile for account {account_id}: {e}")

    if delete:
        return accounts.delete(account_id)
    return accounts.update(account_id, {"connection_status": "disconnected", "is_active": False})
