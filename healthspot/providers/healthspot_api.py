# Healthspot provider search API client.
# healthspot/providers/healthspot_api.py
from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..core.errors import EmptyQuery, NetworkError
from .base import Coordinate, FetchResult
from .normalize import coordinate_from_mapping, normalize_providers

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS = (429, 502, 503, 504)


@dataclass(frozen=True)
class HealthspotApiConfig:
    base_url: str = "http://localhost:3001/api/maps"
    # Term used when no location and no user query are available
    default_query: str = "healthcare provider"
    default_radius_m: int = 5000

    timeout_s: float = 20.0
    max_retries: int = 2
    base_backoff_s: float = 0.5


def _error_message(resp: httpx.Response, fallback: str) -> str:
    """JSON `{error}` body first, then the raw body text, then the fallback."""
    text = resp.text
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    if text.strip():
        return text.strip()
    return fallback


class HealthspotApiProvider:
    """
    Client for the provider search endpoint:
      - GET {base_url}/providers?lat=..&lng=..&radius=..
      - GET {base_url}/providers?query=..[&lat=..&lng=..]

    Responses look like {"providers": [...], "center": {"lat", "lng"}, "error": "..."}.
    Every record is normalized before it is returned.
    """

    def __init__(self, cfg: HealthspotApiConfig, client: Optional[httpx.AsyncClient] = None):
        if not cfg.base_url:
            raise ValueError("HealthspotApiConfig.base_url is required")
        self.cfg = cfg
        self._client = client

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.cfg.timeout_s)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HealthspotApiProvider must be used with 'async with' or provide a client.")
        return self._client

    @property
    def providers_url(self) -> str:
        return f"{self.cfg.base_url.rstrip('/')}/providers"

    async def fetch_near(self, coord: Coordinate, radius_m: Optional[int] = None) -> FetchResult:
        radius = radius_m if radius_m is not None else self.cfg.default_radius_m
        params = {"lat": coord.lat, "lng": coord.lng, "radius": radius}
        return await self._fetch(params, fallback="Failed to fetch nearby providers")

    async def fetch_by_query(self, text: str, bias: Optional[Coordinate] = None) -> FetchResult:
        query = (text or "").strip()
        if not query:
            raise EmptyQuery()
        params: Dict[str, Any] = {"query": query}
        # Location bias improves ranking when we already know where the user is
        if bias is not None:
            params["lat"] = bias.lat
            params["lng"] = bias.lng
        return await self._fetch(params, fallback="Search failed")

    async def fetch_default(self) -> FetchResult:
        params = {"query": self.cfg.default_query}
        return await self._fetch(params, fallback="Failed to fetch providers")

    async def _request_with_retries(self, params: Dict[str, Any]) -> httpx.Response:
        """
        Retries timeouts, connection errors and 429/502/503/504 with exponential backoff + jitter.
        The last response is returned as-is so its body can be reported.
        """
        for attempt in range(self.cfg.max_retries):
            try:
                resp = await self._get(params)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                logger.warning("Provider request failed, retrying: %s", e, extra={"attempt": attempt + 1})
            else:
                if resp.status_code not in _TRANSIENT_STATUS:
                    return resp
                logger.warning("Provider API returned %s, retrying", resp.status_code, extra={"attempt": attempt + 1})

            backoff = self.cfg.base_backoff_s * (2 ** attempt)
            jitter = random.random() * 0.25 * self.cfg.base_backoff_s
            await asyncio.sleep(backoff + jitter)

        try:
            return await self._get(params)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise NetworkError(f"Unable to reach the provider service: {e}") from e

    async def _get(self, params: Dict[str, Any]) -> httpx.Response:
        return await self.client.get(self.providers_url, params=params, headers={"Accept": "application/json"})

    async def _fetch(self, params: Dict[str, Any], *, fallback: str) -> FetchResult:
        logger.info("Fetching providers", extra={"params": params})
        try:
            resp = await self._request_with_retries(params)
        except httpx.HTTPError as e:
            raise NetworkError(f"{fallback}: {e}") from e

        if not resp.is_success:
            message = _error_message(resp, fallback)
            logger.error("Provider API returned %s: %s", resp.status_code, message)
            raise NetworkError(message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise NetworkError("Provider service returned malformed data") from e
        if not isinstance(data, dict):
            raise NetworkError("Provider service returned malformed data")
        if data.get("error"):
            raise NetworkError(str(data["error"]), status_code=resp.status_code)

        raw_providers = data.get("providers") or []
        if not isinstance(raw_providers, list):
            raise NetworkError("Provider service returned malformed data")

        providers = normalize_providers(raw_providers)
        center = coordinate_from_mapping(data.get("center"))
        logger.info("Fetched providers", extra={"count": len(providers), "has_center": center is not None})
        return FetchResult(providers=providers, center=center)
