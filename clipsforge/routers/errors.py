"""Translation of service exceptions into HTTP errors."""

from fastapi import HTTPException, status

from clipsforge.config import logger
from clipsforge.core.exceptions import ClipsForgeError, ProviderError
from clipsforge.core.repositories import NotFoundError, RepositoryError
from clipsforge.core.repositories.exceptions import ConflictError
from clipsforge.core.repositories.exceptions import ValidationError as RecordValidationError
from clipsforge.core.security import ValidationError

# Everything a service call may raise on purpose
SERVICE_ERRORS = (ClipsForgeError, ValidationError, RepositoryError)


def http_error(exc: Exception) -> HTTPException:
    """Map a service exception to the HTTPException the client should see."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, RecordValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ProviderError):
        logger.warning("Vendor failure: %s (upstream status %s)", exc.message, exc.upstream_status)
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    if isinstance(exc, ClipsForgeError):
        return HTTPException(status_code=exc.status_code, detail=exc.message)

    logger.error("Repository failure: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Storage error")
