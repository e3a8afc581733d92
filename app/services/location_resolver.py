from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from app.core.config import settings

log = logging.getLogger(__name__)

ADDRESS_FIELDS = ("address", "suburb", "city", "province", "postal_code")


class LocationResolver:
    """
    Best-effort lookup of a location id for a set of address fields.

    - Uses one AsyncClient instance (connection pooling).
    - Never raises: transport errors, non-2xx and malformed bodies resolve to None.
    - Disabled (always None) when no base URL is configured.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url
        self._client = (
            httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(timeout_seconds), transport=transport)
            if base_url
            else None
        )

    @classmethod
    def from_settings(cls) -> "LocationResolver":
        return cls(
            base_url=settings.location_resolver_url,
            timeout_seconds=settings.location_resolver_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def resolve(self, fields: Mapping[str, Any]) -> str | None:
        if self._client is None:
            return None
        params = {k: str(v) for k, v in fields.items() if k in ADDRESS_FIELDS and v}
        if "city" not in params:
            return None

        try:
            resp = await self._client.get("/resolve", params=params)
        except httpx.RequestError as e:
            # DNS errors, connection refused, timeouts, TLS, etc.
            log.warning("location resolver unavailable: %s", e)
            return None

        if not 200 <= resp.status_code < 300:
            log.warning("location resolver returned HTTP %s", resp.status_code)
            return None
        try:
            body = resp.json()
        except ValueError:
            log.warning("location resolver returned a non-JSON body")
            return None

        if not isinstance(body, dict):
            return None
        location_id = body.get("locationId") or body.get("location_id")
        return str(location_id) if location_id else None
