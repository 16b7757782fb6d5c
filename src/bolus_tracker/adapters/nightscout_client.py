"""Nightscout entries API client."""

import hashlib
from dataclasses import dataclass

import httpx

from bolus_tracker.services.glucose import NightscoutClient

_UNAUTHORIZED = {401, 403}


@dataclass
class HttpxNightscoutClient(NightscoutClient):
    """HTTPX-backed Nightscout client."""

    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(cls) -> "HttpxNightscoutClient":
        """Create a Nightscout client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def latest_entries(
        self, base_url: str, api_secret: str | None
    ) -> list[dict[str, object]]:
        """Fetch the latest entry, retrying with a hashed secret when refused."""
        url = f"{base_url.rstrip('/')}/api/v1/entries.json"
        headers = {"API-SECRET": api_secret} if api_secret else {}
        response = await self._get(url, headers)
        if response.status_code in _UNAUTHORIZED and api_secret:
            hashed = hashlib.sha1(api_secret.encode("utf-8")).hexdigest()  # noqa: S324
            response = await self._get(url, {"api-secret": hashed})
        response.raise_for_status()
        payload = response.json()
        return payload if isinstance(payload, list) else []

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        return await self.http_client.get(
            url, params={"count": 1}, headers=headers, timeout=self.timeout_seconds
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
