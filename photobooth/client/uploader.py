"""Async HTTP client for the photobooth server."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from photobooth.config import settings

# Client errors that still signal a temporary condition on the server side
TRANSIENT_CLIENT_ERRORS = {408, 429}


@dataclass(frozen=True)
class CapturePayload:
    """One capture ready for upload. Never mutated once handed to the queue."""

    image: str
    thumbnail: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


class DeliveryStatus(str, Enum):
    accepted = "accepted"
    rejected = "rejected"
    network_failure = "network_failure"
    invalid = "invalid"


@dataclass
class DeliveryResult:
    status: DeliveryStatus
    status_code: Optional[int] = None
    filename: Optional[str] = None
    message: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.status in (DeliveryStatus.rejected, DeliveryStatus.network_failure)


def classify_response(response: httpx.Response) -> DeliveryResult:
    body = {}
    try:
        parsed = response.json()
        if isinstance(parsed, dict):
            body = parsed
    except ValueError:
        pass

    message = body.get("message") or response.reason_phrase
    if response.is_success:
        return DeliveryResult(
            DeliveryStatus.accepted, response.status_code, filename=body.get("filename"), message=message
        )
    if response.is_client_error and response.status_code not in TRANSIENT_CLIENT_ERRORS:
        return DeliveryResult(DeliveryStatus.invalid, response.status_code, message=message)
    return DeliveryResult(DeliveryStatus.rejected, response.status_code, message=message)


class CaptureUploader:
    """Performs single upload attempts; retry policy belongs to the UploadQueue.

    Uses httpx.AsyncClient for connection pooling. No explicit request timeout
    is applied to uploads, so a slow server is waited on until it answers.
    """

    def __init__(self, server_url: str = None, client: Optional[httpx.AsyncClient] = None):
        self.server_url = (server_url or settings.server_url).rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.server_url, timeout=None)

    async def deliver(self, payload: CapturePayload) -> DeliveryResult:
        try:
            response = await self._client.post("/upload", json=payload.to_json())
        except httpx.TransportError as e:
            return DeliveryResult(DeliveryStatus.network_failure, message=f"{type(e).__name__}: {e}")
        return classify_response(response)

    async def list_overlays(self) -> List[str]:
        response = await self._client.get("/overlays-list")
        response.raise_for_status()
        return response.json()

    async def list_gallery(self) -> List[str]:
        response = await self._client.get("/gallery-data")
        response.raise_for_status()
        return response.json()

    async def fetch_overlay(self, name: str) -> bytes:
        response = await self._client.get(f"/overlays/{name}")
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CaptureUploader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
