"""
Client for the external content-addressed store (Pinata-compatible
pinning API in front of IPFS).

The registry never interprets the returned content identifiers; it only
records them. Requests are bounded by a timeout and retried with
exponential backoff on 5xx, timeouts and connection errors; 429 honours
Retry-After. Once attempts are exhausted a ContentStoreError is raised.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

import httpx

from bluecarbon.config import get_settings
from bluecarbon.logging_config import get_logger

logger = get_logger(__name__)

RETRY_BACKOFF = (1.0, 2.0, 4.0)  # seconds


class ContentStoreError(Exception):
    """Upload failed after bounded retries, or the store answered with an error."""


class ContentStore:
    """Upload structured payloads and binary blobs, get back content ids."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        gateway_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Sequence[float] = RETRY_BACKOFF,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.content_store_url).rstrip("/")
        self.token = token if token is not None else settings.content_store_token
        self.gateway = (gateway_url or settings.content_store_gateway_url).rstrip("/")
        self.timeout = timeout or settings.content_store_timeout
        self.max_retries = max(1, max_retries or settings.content_store_max_retries)
        self.backoff = tuple(backoff) or (0.0,)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def pin_json(self, payload: Dict[str, Any], name: str, kind: Optional[str] = None) -> str:
        """Upload a JSON document and return its content id."""
        keyvalues = {"type": "json", "timestamp": _now_iso()}
        if kind:
            keyvalues["kind"] = kind
        body = {
            "pinataContent": payload,
            "pinataMetadata": {"name": f"{name}_{_now_millis()}", "keyvalues": keyvalues},
        }
        async with self._client() as client:
            response = await self._request_with_retry(
                client, "POST", "/pinning/pinJSONToIPFS", json=body
            )
        return self._content_id(response)

    async def pin_file(
        self,
        data: bytes,
        filename: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload a binary blob and return its content id."""
        metadata = {
            "name": filename,
            "keyvalues": {
                "type": content_type,
                "size": str(len(data)),
                "timestamp": _now_iso(),
            },
        }
        async with self._client() as client:
            response = await self._request_with_retry(
                client,
                "POST",
                "/pinning/pinFileToIPFS",
                files={"file": (filename, data, content_type)},
                data={"pinataMetadata": json.dumps(metadata)},
            )
        return self._content_id(response)

    async def check_connection(self) -> bool:
        """Return True if the store accepts our credentials."""
        try:
            async with self._client() as client:
                response = await client.get("/data/testAuthentication")
        except httpx.HTTPError as e:
            logger.warning("Content store connection failed: %s", e)
            return False
        return response.status_code == 200

    def gateway_url(self, content_id: str) -> str:
        """Resolvable URL for a content id."""
        return gateway_url(content_id, self.gateway)

    async def _request_with_retry(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Perform request with exponential backoff for 5xx and timeouts. On 429, honour Retry-After."""
        last_error: Optional[str] = None
        for attempt in range(self.max_retries):
            is_last = attempt == self.max_retries - 1
            delay = self.backoff[min(attempt, len(self.backoff) - 1)]
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.warning(
                    "Content store request failed (attempt %d/%d): %s",
                    attempt + 1, self.max_retries, last_error,
                )
                if not is_last:
                    await asyncio.sleep(delay)
                continue

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                wait = int(retry_after) if retry_after and retry_after.isdigit() else delay
                last_error = "rate limited"
                if not is_last:
                    await asyncio.sleep(wait)
                continue
            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                if not is_last:
                    await asyncio.sleep(delay)
                continue
            if response.status_code >= 400:
                raise ContentStoreError(f"Content store rejected upload: HTTP {response.status_code}")
            return response

        raise ContentStoreError(f"Content store unavailable after {self.max_retries} attempts ({last_error})")

    @staticmethod
    def _content_id(response: httpx.Response) -> str:
        try:
            content_id = response.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError) as e:
            raise ContentStoreError("Malformed content store response") from e
        if not isinstance(content_id, str) or not content_id:
            raise ContentStoreError("Malformed content store response")
        return content_id


def gateway_url(content_id: str, gateway: Optional[str] = None) -> str:
    """Resolvable URL for a content id through the configured gateway."""
    if not content_id:
        return ""
    gateway = (gateway or get_settings().content_store_gateway_url).rstrip("/")
    return f"{gateway}/{content_id}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _now_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
