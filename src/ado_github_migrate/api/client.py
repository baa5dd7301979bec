"""Base REST client shared by the platform clients."""

import time
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests
from loguru import logger as default_logger
from pydantic import BaseModel

from .exceptions import (
    ApiError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
    UnexpectedStatusError,
)
from .rate_limiter import RateLimiter, RetryPolicy

USER_AGENT = 'ado-github-migrate/0.1.0'


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool


class PlatformClient:
    """REST client with authentication, rate limiting and bounded retry.

    Subclasses set their authentication headers and add the platform
    operations on top of :meth:`get`, :meth:`put` and friends.
    """

    platform_name = 'platform'

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        rate_limit_per_second: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        logger=None,
    ):
        """Initialize platform client.

        Args:
            base_url: API root URL
            timeout: Request timeout in seconds
            rate_limit_per_second: Maximum requests per second
            retry_policy: Retry policy for rate-limit and network errors
            logger: Run logger to bind onto
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {'Content-Type': 'application/json', 'User-Agent': USER_AGENT}
        )
        self.rate_limiter = RateLimiter(rate_limit_per_second)
        self.logger = (logger or default_logger).bind(
            component=self.__class__.__name__
        )
        self.retry_policy = retry_policy or RetryPolicy(logger=logger)

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Absolute URLs (e.g. pagination links or a second API host) are
        returned unchanged.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        if endpoint.startswith(('http://', 'https://')):
            return endpoint
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    def _rate_limit_reset_delay(self, headers: Dict[str, str]) -> Optional[int]:
        if headers.get('Retry-After'):
            try:
                return int(float(headers['Retry-After']))
            except ValueError:
                return None
        reset = headers.get('X-RateLimit-Reset')
        if reset and reset.isdigit():
            return max(int(reset) - int(time.time()), 1)
        return None

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response

        Returns:
            Standardized API response

        Raises:
            ApiError: For the various error statuses
        """
        headers = dict(response.headers)
        status = response.status_code

        # Handle rate limiting
        if status == 429 or (
            status == 403 and headers.get('X-RateLimit-Remaining') == '0'
        ):
            retry_after = self._rate_limit_reset_delay(headers) or 60
            raise RateLimitError(
                f'{self.platform_name} rate limit exceeded. '
                f'Retry after {retry_after} seconds',
                retry_after=retry_after,
                status_code=status,
            )

        # Handle authentication errors
        if status in (401, 403):
            raise UnauthorizedError(
                f'{self.platform_name} authentication failed ({status})',
                status_code=status,
            )

        # Handle not found
        if status == 404:
            raise NotFoundError(
                f'{self.platform_name} resource not found: {response.url}',
                status_code=status,
            )

        # Handle other client/server errors
        if status >= 400:
            error_data = None
            try:
                error_data = response.json()
                message = error_data.get('message', f'HTTP {status}')
            except (ValueError, AttributeError):
                message = f'HTTP {status}: {response.text}'

            raise UnexpectedStatusError(
                f'{self.platform_name} API request failed: {message}',
                status_code=status,
                response_data=error_data if isinstance(error_data, dict) else None,
            )

        # Parse response data
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        return APIResponse(
            status_code=status,
            data=data,
            headers=headers,
            success=200 <= status < 300,
        )

    def _send(self, method: str, url: str, **kwargs) -> APIResponse:
        self.rate_limiter.acquire()
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            self.logger.error(f'Network error during {method} {url}: {e}')
            raise NetworkError(f'Network error: {e}') from e
        return self._handle_response(response)

    def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> APIResponse:
        """Make an API request, retrying rate-limit and network failures.

        Args:
            method: HTTP method
            endpoint: API endpoint or absolute URL
            params: Query parameters
            data: JSON request body
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        if data is not None:
            kwargs['json'] = data
        self.logger.debug(f'{method} {url}')
        return self.retry_policy.call(self._send, method, url, params=params, **kwargs)

    def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make GET request."""
        return self.request('GET', endpoint, params=params, **kwargs)

    def put(
        self,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> APIResponse:
        """Make PUT request."""
        return self.request('PUT', endpoint, params=params, data=data, **kwargs)

    def test_connection(self) -> bool:
        """Test connection to the platform.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            return self._ping()
        except ApiError as e:
            self.logger.error(f'Connection test failed: {e}')
            return False

    def _ping(self) -> bool:
        raise NotImplementedError

    def close(self):
        """Close the client session."""
        self.session.close()
        self.logger.debug(f'{self.platform_name} client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
