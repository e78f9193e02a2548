"""
Bearer tokens from Google application-default credentials.
"""

import asyncio
import logging
from typing import Dict, Optional, Sequence

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

AD_MANAGER_SCOPES = ["https://www.googleapis.com/auth/dfp"]
ANALYTICS_SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]
STORAGE_SCOPES = ["https://www.googleapis.com/auth/devstorage.read_write"]


class GoogleTokenProvider:
    """
    Caches ADC credentials and refreshes them when expired.

    google-auth is synchronous, so loading and refreshing run in a worker
    thread to keep the event loop free.
    """

    def __init__(self, scopes: Sequence[str]):
        self.scopes = list(scopes)
        self._credentials = None

    def _refresh(self) -> str:
        if self._credentials is None:
            self._credentials, project = google.auth.default(scopes=self.scopes)
            logger.debug(f"Loaded application default credentials (project={project})")
        if not self._credentials.valid:
            self._credentials.refresh(Request())
        return self._credentials.token

    async def token(self) -> str:
        try:
            return await asyncio.to_thread(self._refresh)
        except GoogleAuthError as e:
            raise AuthenticationError(
                "Could not obtain Google credentials",
                context={"scopes": self.scopes},
                original_exception=e
            )

    async def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {await self.token()}"}


def google_auth_headers(scopes: Sequence[str], provider: Optional[GoogleTokenProvider] = None):
    """Header coroutine for ReportAPIClient backed by ADC"""
    return (provider or GoogleTokenProvider(scopes)).headers
