"""
Domain exceptions raised by services and translated to HTTP by routers.

Each carries the status code the API should answer with.
"""

from typing import Optional


class ClipsForgeError(Exception):
    """Base exception for service-level failures."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class UploadRejectedError(ClipsForgeError):
    """Upload refused because of file size, duration or format."""

    status_code = 400


class QuotaExceededError(ClipsForgeError):
    """Plan limit reached (monthly videos, storage, connected accounts)."""

    status_code = 429


class AccountLimitError(QuotaExceededError):
    """No more accounts of this platform allowed on the user's plan."""


class SchedulingError(ClipsForgeError):
    """Post cannot be scheduled at the requested time."""

    status_code = 400


class ProviderError(ClipsForgeError):
    """A vendor API (Whisper, Groq, Shotstack, Ayrshare, Cloudinary) failed."""

    status_code = 502

    def __init__(
        self,
        provider: str,
        message: str,
        upstream_status: Optional[int] = None,
        retryable: bool = False,
    ):
        self.provider = provider
        self.upstream_status = upstream_status
        self.retryable = retryable
        super().__init__(f"{provider}: {message}")


class ResponseFormatError(ProviderError):
    """The vendor answered, but not with the structure we asked for."""


class DuplicateAccountError(ClipsForgeError):
    """The social account is already connected, or a connection is in progress."""

    status_code = 409


class ProcessingConflictError(ClipsForgeError):
    """The video is already being processed, or is not ready to be."""

    status_code = 409
