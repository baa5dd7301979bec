"""Platform REST clients."""

from .azure_devops import AzureDevOpsClient
from .client import APIResponse, PlatformClient
from .exceptions import (
    ApiError,
    ApiErrorKind,
    NetworkError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
    UnexpectedStatusError,
)
from .github import GitHubClient
from .rate_limiter import RateLimiter, RetryPolicy

__all__ = [
    'AzureDevOpsClient',
    'APIResponse',
    'PlatformClient',
    'ApiError',
    'ApiErrorKind',
    'NetworkError',
    'NotFoundError',
    'RateLimitError',
    'UnauthorizedError',
    'UnexpectedStatusError',
    'GitHubClient',
    'RateLimiter',
    'RetryPolicy',
]
