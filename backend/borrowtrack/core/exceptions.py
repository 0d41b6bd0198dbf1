"""
Error taxonomy for the data layer and its HTTP mapping.

Data layer:
- RemoteStoreError: the hosted database failed. Always caught by the
  reconciliation layer and turned into a local-cache fallback.
- LocalCacheError: a local mirror file could not be read or written.
- StoreUnavailableError: remote failed AND the local cache failed too.
- InvalidInputError / DuplicateIdentityError: rejected before any store call,
  raised on purpose so the caller can show a field-level message.

HTTP: use generic error messages externally, detailed logging internally.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class BorrowTrackError(Exception):
    """Base class for data-layer errors."""


class RemoteStoreError(BorrowTrackError):
    pass


class LocalCacheError(BorrowTrackError):
    pass


class StoreUnavailableError(BorrowTrackError):
    pass


class InvalidInputError(BorrowTrackError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class DuplicateIdentityError(InvalidInputError):
    pass


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        Generic 404.

        Example:
            if not item:
                raise BusinessError.not_found("Inventory item")
        """
        if reason:
            logger.info(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """
        Generic 401 for all authentication failures.

        Same response for wrong password, unknown user, bad token.
        """
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation errors.

        OK to include specific details here since the user caused the issue.
        Examples: "Quantity must be positive", "Only 2 unit(s) available"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def conflict(detail: str) -> HTTPException:
        """
        409 for identity conflicts.
        Example: "User with this email already exists"
        """
        logger.info(f"Conflict: {detail}")
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )

    @staticmethod
    def from_invalid_input(error: InvalidInputError) -> HTTPException:
        if isinstance(error, DuplicateIdentityError):
            return BusinessError.conflict(str(error))
        return BusinessError.bad_request(str(error))

    @staticmethod
    def service_unavailable(original_error: Exception = None) -> HTTPException:
        """
        503 when neither the database nor the local cache can serve the request.
        """
        if original_error:
            logger.error(
                f"Store unavailable: {type(original_error).__name__}: {str(original_error)}"
            )
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Data store temporarily unavailable. Please try again later.",
        )
