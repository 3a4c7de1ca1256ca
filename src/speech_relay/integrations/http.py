"""Shared aiohttp plumbing for collaborator clients."""

import asyncio
from typing import Any, Dict, Optional, Type

import aiohttp

from ..core.errors import PipelineError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class HTTPClient:
    """Base class owning a lazily created aiohttp session.

    One instance is created per process and shared by concurrent runs;
    aiohttp sessions are safe for concurrent requests.
    """

    #: Error raised for any failure talking to the collaborator
    error_class: Type[PipelineError] = PipelineError
    #: Name used in log and error messages
    service_name: str = "collaborator"

    def __init__(self, base_url: str, timeout: float = 30.0):
        """Initialize client.

        Args:
            base_url: Base URL for the collaborator API
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def _post(
        self,
        url: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        data: Any = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a request and return the decoded JSON body.

        Raises:
            error_class: On timeout, connection failure, non-200 status or
                an undecodable body
        """
        try:
            session = await self._get_session()
            async with session.post(url, json=json, data=data, params=params, headers=headers) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"{self.service_name} returned {response.status}: {error_text}")
                    raise self.error_class(
                        f"{self.service_name} returned {response.status}: {error_text[:500]}"
                    )
                return await response.json(content_type=None)

        except asyncio.TimeoutError:
            logger.error(f"Timeout calling {self.service_name}")
            raise self.error_class(f"{self.service_name} request timed out")
        except aiohttp.ClientError as e:
            logger.error(f"Connection error calling {self.service_name}: {e}")
            raise self.error_class(f"{self.service_name} connection error: {e}")
        except ValueError as e:
            raise self.error_class(f"{self.service_name} returned invalid JSON: {e}")

    def _require_key(self, api_key: Optional[str]) -> str:
        if not api_key:
            raise self.error_class(f"{self.service_name} API key is not configured")
        return api_key

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
