"""
Repository layer for Firestore data access.

All collections are nested under ``users/{uid}`` so every repository is
constructed with the authenticated user's id.
"""

from clipsforge.core.repositories.clips import ClipRepository
from clipsforge.core.repositories.exceptions import (
    ClipRepositoryError,
    NotFoundError,
    RepositoryError,
    SocialAccountRepositoryError,
    SocialPostRepositoryError,
    VideoRepositoryError,
)
from clipsforge.core.repositories.profiles import ProfileRepository
from clipsforge.core.repositories.social_accounts import SocialAccountRepository
from clipsforge.core.repositories.social_posts import SocialPostRepository
from clipsforge.core.repositories.videos import VideoRepository

__all__ = [
    "ClipRepository",
    "ClipRepositoryError",
    "NotFoundError",
    "ProfileRepository",
    "RepositoryError",
    "SocialAccountRepository",
    "SocialAccountRepositoryError",
    "SocialPostRepository",
    "SocialPostRepositoryError",
    "VideoRepository",
    "VideoRepositoryError",
]
