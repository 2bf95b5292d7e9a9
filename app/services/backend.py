"""Async client for the Supabase backend (PostgREST tables + GoTrue auth)."""

import logging
from typing import Any, Mapping, Optional

import niquests

from app.core.config import Settings
from app.services.base import RemoteClient

logger = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"
UNIQUE_VIOLATION = "23505"
NO_ROWS = "PGRST116"
INVALID_TEXT = "22P02"  # e.g. a malformed uuid in an eq filter


class BackendError(Exception):
    """Domain exception for backend failures (HTTP or transport)."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[int] = None,
        original_exception: Exception = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.original_exception = original_exception

    @property
    def is_duplicate(self) -> bool:
        return self.code == UNIQUE_VIOLATION or "duplicate key" in self.message

    @property
    def is_not_found(self) -> bool:
        return self.code in (NO_ROWS, INVALID_TEXT) or self.status == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status in (401, 403)


def _error_from_response(response: niquests.Response) -> BackendError:
    """Build a BackendError from a PostgREST or GoTrue error body."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or f"HTTP {status}"
        )
        code = body.get("error_code") or body.get("code")
    else:
        message = response.text or f"HTTP {status}"
        code = None

    return BackendError(str(message), str(code) if code is not None else None, status)


def _format_filter(value: Any) -> str:
    if isinstance(value, bool):
        return "eq.true" if value else "eq.false"
    return f"eq.{value}"


class BackendClient(RemoteClient):
    """Table CRUD and auth calls against one Supabase project.

    Every method takes the caller's access token explicitly; without one the
    anonymous key is used and row-level rules apply accordingly.
    """

    def __init__(self, settings: Settings | None = None):
        super().__init__(settings)
        self.base_url = self._settings.supabase_url.rstrip("/")
        self.anon_key = self._settings.supabase_anon_key

    def _headers(
        self, access_token: Optional[str], extra: Optional[Mapping[str, str]] = None
    ) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Send one request and decode the JSON body (None when empty)."""
        url = f"{self.base_url}{path}"
        try:
            response = await self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(access_token, headers),
                **self._request_kwargs(),
            )
        except niquests.exceptions.RequestException as exc:
            logger.error("Backend %s %s failed: %s", method, path, exc)
            raise BackendError(f"Network error: {exc}", original_exception=exc) from exc

        if not response.ok:
            raise _error_from_response(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(
                "Malformed response from backend",
                status=response.status_code,
                original_exception=exc,
            ) from exc

    # --- Tables (PostgREST) ---

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        single: bool = False,
        access_token: Optional[str] = None,
    ) -> Any:
        """Select rows matching equality filters.

        ``order`` uses PostgREST syntax, e.g. ``created_at.desc``. With
        ``single`` the backend must return exactly one row; zero rows raise a
        BackendError whose ``is_not_found`` is true.
        """
        params = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = _format_filter(value)
        if order:
            params["order"] = order
        headers = {"Accept": SINGLE_OBJECT} if single else None
        return await self._send(
            "GET",
            f"/rest/v1/{table}",
            access_token=access_token,
            params=params,
            headers=headers,
        )

    async def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        returning: bool = True,
        access_token: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        """Insert one row; returns the stored row when ``returning``."""
        headers = {
            "Prefer": "return=representation" if returning else "return=minimal"
        }
        if returning:
            headers["Accept"] = SINGLE_OBJECT
        return await self._send(
            "POST",
            f"/rest/v1/{table}",
            access_token=access_token,
            json=dict(row),
            headers=headers,
        )

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
        access_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """Patch the single row matching ``filters`` and return it."""
        params = {column: _format_filter(v) for column, v in filters.items()}
        params["select"] = "*"
        return await self._send(
            "PATCH",
            f"/rest/v1/{table}",
            access_token=access_token,
            params=params,
            json=dict(values),
            headers={"Prefer": "return=representation", "Accept": SINGLE_OBJECT},
        )

    async def delete(
        self,
        table: str,
        *,
        filters: Mapping[str, Any],
        access_token: Optional[str] = None,
    ) -> None:
        """Delete every row matching ``filters``."""
        params = {column: _format_filter(v) for column, v in filters.items()}
        await self._send(
            "DELETE",
            f"/rest/v1/{table}",
            access_token=access_token,
            params=params,
            headers={"Prefer": "return=minimal"},
        )

    # --- Auth (GoTrue) ---

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        return await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    async def sign_up(
        self, email: str, password: str, data: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        return await self._send(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": data or {}},
        )

    async def sign_out(self, access_token: str) -> None:
        await self._send("POST", "/auth/v1/logout", access_token=access_token)

    async def get_user(self, access_token: str) -> dict[str, Any]:
        return await self._send("GET", "/auth/v1/user", access_token=access_token)

    async def refresh_session(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token for a new access/refresh token pair."""
        return await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
