# clients/companion_client.py

"""
Client for the optional companion server: liveness, credential probe
and the persisted artifact listing
"""

import logging
from typing import List, Optional

import httpx

from tinyshrink.core.config import settings
from tinyshrink.models.compression import ApiKeyStatus, StoredArtifactInfo

logger = logging.getLogger(__name__)


class CompanionClient:
    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _request(self, method: str, path: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            return await self._client.request(method, url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url)

    async def health(self) -> bool:
        try:
            response = await self._request("GET", "/health")
        except httpx.HTTPError as e:
            logger.warning(f"Companion server at {self.base_url} unreachable: {e}")
            return False
        return response.status_code == 200

    async def api_key_status(self) -> ApiKeyStatus:
        """Whether the companion holds a key of its own; never returns the key"""
        response = await self._request("GET", f"{settings.api_prefix}/config/api-key-status")
        response.raise_for_status()
        return ApiKeyStatus(**response.json())

    async def list_artifacts(self) -> List[StoredArtifactInfo]:
        response = await self._request("GET", f"{settings.api_prefix}/compressed")
        response.raise_for_status()
        return [StoredArtifactInfo(**item) for item in response.json().get("files", [])]

    async def delete_artifact(self, name: str) -> bool:
        response = await self._request("DELETE", f"{settings.api_prefix}/compressed/{name}")
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True
