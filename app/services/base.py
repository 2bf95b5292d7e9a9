"""Shared HTTP plumbing for the remote API clients."""

from typing import Any

import niquests

from app.core.config import Settings, get_settings


class RemoteClient:
    """Base class owning one async HTTP session.

    Remote calls are never retried and only time out when ``http_timeout``
    is configured.
    """

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self._settings = settings
        self.session = niquests.AsyncSession(retries=0)
        if settings.proxy:
            self.session.proxies = {"http": settings.proxy, "https": settings.proxy}

    def _request_kwargs(self) -> dict[str, Any]:
        """Per-request keyword arguments common to every call."""
        kwargs: dict[str, Any] = {}
        if self._settings.http_timeout is not None:
            kwargs["timeout"] = self._settings.http_timeout
        return kwargs

    async def aclose(self) -> None:
        """Properly close the internal HTTP session."""
        if hasattr(self, "session") and self.session:
            await self.session.close()
