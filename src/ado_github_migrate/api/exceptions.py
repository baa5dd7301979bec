"""Platform API exceptions."""

from enum import Enum
from typing import Optional


class ApiErrorKind(str, Enum):
    """Classification of platform API failures."""

    UNAUTHORIZED = 'unauthorized'
    NOT_FOUND = 'not_found'
    RATE_LIMITED = 'rate_limited'
    NETWORK = 'network'
    UNEXPECTED = 'unexpected'


class ApiError(Exception):
    """Base exception for platform API errors."""

    kind = ApiErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        """Initialize platform API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from API
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry the request with backoff."""
        return self.kind in (ApiErrorKind.RATE_LIMITED, ApiErrorKind.NETWORK)


class UnauthorizedError(ApiError):
    """Authentication or authorization failure."""

    kind = ApiErrorKind.UNAUTHORIZED


class NotFoundError(ApiError):
    """Resource not found error."""

    kind = ApiErrorKind.NOT_FOUND


class RateLimitError(ApiError):
    """Rate limit exceeded error."""

    kind = ApiErrorKind.RATE_LIMITED

    def __init__(self, message: str, retry_after: int = 60, **kwargs):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retry
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NetworkError(ApiError):
    """Connection failure, timeout or other transport error."""

    kind = ApiErrorKind.NETWORK


class UnexpectedStatusError(ApiError):
    """Any other non-success HTTP status."""

    kind = ApiErrorKind.UNEXPECTED
