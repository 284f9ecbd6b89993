"""
ArcGIS Online (AGO) feature service clients.

Approved properties are pushed to the municipality's AGO feature layer.
``HttpAgoClient`` talks to the real layer through ``applyEdits``;
``MockAgoClient`` simulates it for development and demos.
"""

import asyncio
import json
import logging
import random
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from lms.core.config import AgoSyncMode, Settings, get_settings
from lms.core.errors import SyncFailure

logger = logging.getLogger(__name__)

MOCK_ERRORS = [
    "Connection timeout",
    "Invalid geometry",
    "Duplicate GlobalID",
    "Service unavailable",
    "Authentication failed",
]


@dataclass
class SyncResult:
    """Outcome of one sync call: a GlobalID on success, an error message otherwise."""

    success: bool
    global_id: Optional[str] = None
    error: Optional[str] = None


class AgoClient(Protocol):
    async def push_feature(self, attributes: dict[str, Any]) -> SyncResult:
        ...


def new_global_id() -> str:
    """GlobalID in ArcGIS' braced GUID format."""
    return "{" + str(uuid.uuid4()) + "}"


class MockAgoClient:
    """Simulated AGO layer with a configurable success rate."""

    def __init__(
        self,
        success_rate: float = 0.9,
        rng: Optional[random.Random] = None,
        delay_seconds: float = 0.0,
    ):
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self.delay_seconds = delay_seconds

    async def push_feature(self, attributes: dict[str, Any]) -> SyncResult:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if self.rng.random() < self.success_rate:
            return SyncResult(success=True, global_id=new_global_id())
        return SyncResult(success=False, error=self.rng.choice(MOCK_ERRORS))


class HttpAgoClient:
    """Client for an AGO feature layer's REST ``applyEdits`` endpoint."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    async def push_feature(self, attributes: dict[str, Any]) -> SyncResult:
        feature: dict[str, Any] = {"attributes": attributes}
        if attributes.get("latitude") is not None and attributes.get("longitude") is not None:
            feature["geometry"] = {
                "x": attributes["longitude"],
                "y": attributes["latitude"],
                "spatialReference": {"wkid": 4326},
            }

        data = {"f": "json", "adds": json.dumps([feature])}
        if self.token:
            data["token"] = self.token

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/applyEdits",
                    data=data,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.warning(f"[AGO] Request failed: {e}")
            raise SyncFailure(f"Connection error: {e}") from e

        if response.status_code != 200:
            logger.warning(f"[AGO] applyEdits failed: {response.status_code}")
            return SyncResult(success=False, error=f"HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            return SyncResult(success=False, error="Invalid response from AGO")

        if "error" in body:
            return SyncResult(success=False, error=body["error"].get("message", "Unknown AGO error"))

        results = body.get("addResults") or []
        if not results:
            return SyncResult(success=False, error="AGO returned no add results")

        first = results[0]
        if not first.get("success"):
            error = first.get("error") or {}
            return SyncResult(success=False, error=error.get("description", "Feature rejected by AGO"))

        return SyncResult(success=True, global_id=first.get("globalId") or new_global_id())


def get_ago_client(settings: Optional[Settings] = None) -> AgoClient:
    """Client selected by ``AGO_SYNC_MODE``."""
    settings = settings or get_settings()
    if settings.ago_sync_mode == AgoSyncMode.HTTP:
        if not settings.ago_base_url:
            raise ValueError("AGO_BASE_URL required when AGO_SYNC_MODE=http")
        return HttpAgoClient(
            base_url=settings.ago_base_url,
            token=settings.ago_api_token,
            timeout=settings.ago_timeout_seconds,
        )
    return MockAgoClient(success_rate=settings.ago_mock_success_rate)


def provide_ago_client() -> AgoClient:
    """FastAPI dependency for the configured client."""
    return get_ago_client()
