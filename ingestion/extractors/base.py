"""
Shared HTTP plumbing for the reporting API clients.

Maps transport failures and HTTP status codes onto the extraction exception
hierarchy. Requests are made once; a failed call propagates to the job, which
marks its checkpoint FAILED so the next run resumes from the stored ids.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from core.exceptions import (
    APIExtractionError,
    AuthenticationError,
    NetworkError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)

HeaderProvider = Callable[[], Awaitable[Dict[str, str]]]


async def no_auth_headers() -> Dict[str, str]:
    return {}


class ReportAPIClient:
    """
    Base class for reporting API clients.

    Attributes:
        name: Report type name used in logs and error context
        http: Shared httpx client, owned by the caller
        auth_headers: Coroutine returning per-request auth headers
    """

    name = "report"

    def __init__(
        self,
        http: httpx.AsyncClient,
        auth_headers: Optional[HeaderProvider] = None,
        timeout: float = 30.0
    ):
        self.http = http
        self.auth_headers = auth_headers or no_auth_headers
        self.timeout = timeout

    async def request_raw(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Perform one HTTP request and return the successful response.

        Raises:
            AuthenticationError: 401 / 403
            ResourceNotFoundError: 404
            NetworkError: transport errors, timeouts and 5xx
            APIExtractionError: any other non-2xx
        """
        headers = {**(await self.auth_headers()), **kwargs.pop("headers", {})}
        context = {"report": self.name, "api_url": url, "method": method}

        try:
            response = await self.http.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timeout calling {self.name} API",
                context={**context, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Network error calling {self.name} API",
                context=context,
                original_exception=e
            )

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {url}",
                context={**context, "status_code": status, "response_body": response.text[:500]}
            )
        if status == 404:
            raise ResourceNotFoundError(
                f"Resource not found: {url}",
                context={**context, "status_code": 404}
            )
        if status >= 500:
            raise NetworkError(
                f"Server error {status} from {self.name} API",
                context={**context, "status_code": status, "response_body": response.text[:500]}
            )
        if status >= 400:
            raise APIExtractionError(
                f"{self.name} API rejected request with {status}",
                context={**context, "status_code": status, "response_body": response.text[:500]}
            )
        return response

    async def request_json(self, method: str, url: str, **kwargs) -> Any:
        response = await self.request_raw(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise APIExtractionError(
                "Failed to parse JSON response",
                context={
                    "report": self.name,
                    "api_url": url,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )
