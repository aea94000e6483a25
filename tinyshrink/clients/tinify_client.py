# clients/tinify_client.py

"""
Remote compression client - two-phase calls to the Tinify API,
either directly or through the companion proxy server
"""

import base64
import logging
from typing import Optional

import httpx

from tinyshrink.core.config import settings
from tinyshrink.core.exceptions import CompressionError, CredentialError
from tinyshrink.models.compression import Artifact, CompressionPointer
from tinyshrink.models.credential import Credential

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to compress image"
STORED_URL_HEADER = "X-Compressed-Url"


def basic_auth_header(secret: str) -> str:
    """Authorization header value for the Tinify API"""
    token = base64.b64encode(f"api:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def remote_error_message(response: httpx.Response, default: str) -> str:
    """Prefer the message the remote service sent; fall back to a generic one"""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    return f"{default} (HTTP {response.status_code})"


def pointer_from_output(output: Optional[dict], location: Optional[str],
                        input_info: Optional[dict] = None) -> CompressionPointer:
    """Build a CompressionPointer from the 'output' block of a shrink response"""
    output = output or {}
    location = location or output.get("url")
    if not location:
        raise CompressionError("No output URL received from TinyPNG")

    size = output.get("size")
    if size is None:
        raise CompressionError("No compressed size received from TinyPNG")

    return CompressionPointer(
        location=location,
        compressed_size=int(size),
        content_type=output.get("type"),
        input_size=(input_info or {}).get("size"),
        width=output.get("width"),
        height=output.get("height")
    )


class BaseTransport:
    def __init__(self, timeout: float = None, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client = client

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            if self._client is not None:
                return await self._client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out")
            raise CompressionError(f"Transport failure: request timed out ({type(e).__name__})") from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise CompressionError(f"Transport failure: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise CompressionError("Remote service returned a malformed response") from e
        if not isinstance(body, dict):
            raise CompressionError("Remote service returned a malformed response")
        return body

    async def shrink(self, credential: Credential, image_bytes: Optional[bytes] = None,
                     image_url: Optional[str] = None, filename: str = "image") -> CompressionPointer:
        raise NotImplementedError

    async def download(self, location: str, credential: Credential) -> httpx.Response:
        raise NotImplementedError


class TinifyTransport(BaseTransport):
    """Talks to the Tinify API itself; needs the secret"""

    def __init__(self, api_url: str = None, timeout: float = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__(timeout, client)
        self.api_url = (api_url or settings.tinify_api_url).rstrip("/")

    def _auth(self, credential: Credential) -> dict:
        if not credential.secret:
            raise CredentialError("API key is required")
        return {"Authorization": basic_auth_header(credential.secret)}

    async def shrink(self, credential: Credential, image_bytes: Optional[bytes] = None,
                     image_url: Optional[str] = None, filename: str = "image") -> CompressionPointer:
        headers = self._auth(credential)
        url = f"{self.api_url}/shrink"

        if image_bytes is not None:
            headers["Content-Type"] = "application/octet-stream"
            response = await self._request("POST", url, content=image_bytes, headers=headers)
        else:
            response = await self._request("POST", url, json={"source": {"url": image_url}}, headers=headers)

        if not response.is_success:
            raise CompressionError(remote_error_message(response, GENERIC_FAILURE), response.status_code)

        body = self._json(response)
        return pointer_from_output(body.get("output"), response.headers.get("location"), body.get("input"))

    async def download(self, location: str, credential: Credential) -> httpx.Response:
        return await self._request("GET", location, headers=self._auth(credential))


class ProxyTransport(BaseTransport):
    """Goes through the companion server, which may hold the key itself"""

    def __init__(self, base_url: str, timeout: float = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__(timeout, client)
        self.base_url = base_url.rstrip("/")

    async def shrink(self, credential: Credential, image_bytes: Optional[bytes] = None,
                     image_url: Optional[str] = None, filename: str = "image") -> CompressionPointer:
        if image_bytes is not None:
            data = {"apiKey": credential.secret} if credential.secret else {}
            response = await self._request(
                "POST",
                f"{self.base_url}/api/tinypng/shrink/file",
                data=data,
                files={"image": (filename, image_bytes, "application/octet-stream")}
            )
        else:
            payload = {"imageUrl": image_url}
            if credential.secret:
                payload["apiKey"] = credential.secret
            response = await self._request("POST", f"{self.base_url}/api/tinypng/shrink/url", json=payload)

        if not response.is_success:
            raise CompressionError(remote_error_message(response, GENERIC_FAILURE), response.status_code)

        body = self._json(response)
        return pointer_from_output(body.get("output"), body.get("location"))

    async def download(self, location: str, credential: Credential) -> httpx.Response:
        params = {"url": location}
        if credential.secret:
            params["apiKey"] = credential.secret
        return await self._request("GET", f"{self.base_url}/api/tinypng/output", params=params)


class RemoteCompressionClient:
    def __init__(self, transport: BaseTransport):
        self.transport = transport
        logger.info(f"Initialized RemoteCompressionClient with {type(transport).__name__}")

    async def submit(self, credential: Optional[Credential], image_bytes: Optional[bytes] = None,
                     image_url: Optional[str] = None, filename: str = "image") -> CompressionPointer:
        """Send an image (bytes or URL) for compression and return the pointer to the result"""
        if (image_bytes is None) == (image_url is None):
            raise ValueError("Provide exactly one of image_bytes or image_url")
        if image_bytes is not None and len(image_bytes) == 0:
            raise ValueError("Image file is required")
        if image_url is not None and not image_url.strip():
            raise ValueError("Image URL is required")
        if credential is None or not credential.usable:
            raise CredentialError("API key is required")

        source = f"{len(image_bytes)} bytes" if image_bytes is not None else image_url
        logger.info(f"Submitting '{filename}' for compression ({source})")

        pointer = await self.transport.shrink(credential, image_bytes=image_bytes,
                                              image_url=image_url, filename=filename)
        logger.info(f"Compression of '{filename}' accepted: {pointer.compressed_size} bytes at {pointer.location}")
        return pointer

    async def fetch_artifact(self, pointer: CompressionPointer, credential: Optional[Credential]) -> Artifact:
        """Download the compressed bytes the pointer refers to"""
        if credential is None or not credential.usable:
            raise CredentialError("API key is required")

        response = await self.transport.download(pointer.location, credential)
        if not response.is_success:
            raise CompressionError(
                remote_error_message(response, "Failed to download compressed image"),
                response.status_code
            )

        content_type = response.headers.get("content-type") or pointer.content_type or "application/octet-stream"
        logger.debug(f"Fetched {len(response.content)} bytes ({content_type}) from {pointer.location}")
        stored_url = response.headers.get(STORED_URL_HEADER)
        if stored_url:
            logger.info(f"Companion server kept a copy at {stored_url}")
        return Artifact(data=response.content, content_type=content_type, stored_url=stored_url)


def build_compression_client(client: Optional[httpx.AsyncClient] = None) -> RemoteCompressionClient:
    """Client wired from settings: proxy transport when a companion server is configured"""
    if settings.use_proxy and settings.companion_url:
        transport = ProxyTransport(settings.companion_url, client=client)
    else:
        transport = TinifyTransport(client=client)
    return RemoteCompressionClient(transport)
