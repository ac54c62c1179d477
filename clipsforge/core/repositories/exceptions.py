"""
Repository exceptions.

Every repository wraps Firestore failures in its own subclass so callers
can tell which collection failed without inspecting the cause.
"""


class RepositoryError(Exception):
    """Base exception for all repository errors."""
    pass


class VideoRepositoryError(RepositoryError):
    pass


class ClipRepositoryError(RepositoryError):
    pass


class SocialAccountRepositoryError(RepositoryError):
    pass


class SocialPostRepositoryError(RepositoryError):
    pass


class ProfileRepositoryError(RepositoryError):
    pass


class NotFoundError(RepositoryError):
    """Raised when a requested resource is not found."""
    pass


class ValidationError(RepositoryError):
    """Raised when repository input is invalid."""
    pass


class ConflictError(RepositoryError):
    """Raised when a document already exists."""
    pass
