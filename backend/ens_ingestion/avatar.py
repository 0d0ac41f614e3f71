from __future__ import annotations

import httpx
from loguru import logger

from ens_history.core.config import settings


class AvatarClient:
    """Optional avatar lookup against ensdata.net; never raises."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or str(settings.ensdata_base_url)
        self.timeout = timeout or settings.http_timeout_seconds
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def fetch_avatar(self, address: str) -> str | None:
        try:
            response = self.client.get(f"/{address}")
        except httpx.HTTPError as exc:
            logger.warning("Avatar lookup for {} failed: {}", address, exc)
            return None
        if not response.is_success:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        avatar = payload.get("avatar_small")
        return avatar if isinstance(avatar, str) and avatar else None

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "AvatarClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
