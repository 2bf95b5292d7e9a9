"""Session/identity provider over the backend's auth service.

Sign-in and sign-up toast their own failures and then re-raise, so the
calling form can reset its state without notifying twice. Sign-out never
raises.
"""

import logging
from typing import Any, Optional

from app.models.auth import AuthSession
from app.services.backend import BackendClient, BackendError
from app.services.notifications import Notifier

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Raised when signing in or signing up fails."""

    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(message)
        self.original_exception = original_exception


def _session_from_token_payload(payload: dict[str, Any]) -> AuthSession:
    user = payload.get("user") or {}
    return AuthSession(
        user_id=str(user["id"]),
        email=user.get("email"),
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
    )


class IdentityProvider:
    def __init__(self, backend: BackendClient, notifier: Notifier):
        self.backend = backend
        self.notifier = notifier

    async def current_session(
        self, access_token: Optional[str], refresh_token: Optional[str] = None
    ) -> Optional[AuthSession]:
        """Re-query the backend for the user behind ``access_token``.

        An expired access token is exchanged for a fresh pair when a refresh
        token is available; the returned session then carries the new tokens.
        """
        if not access_token:
            return None
        try:
            user = await self.backend.get_user(access_token)
        except BackendError as exc:
            if exc.is_unauthorized:
                logger.info("Stored access token rejected: %s", exc)
                return await self._refresh(refresh_token)
            logger.error("Error looking up current user: %s", exc)
            return None
        return AuthSession(
            user_id=str(user["id"]),
            email=user.get("email"),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    async def _refresh(self, refresh_token: Optional[str]) -> Optional[AuthSession]:
        if not refresh_token:
            return None
        try:
            payload = await self.backend.refresh_session(refresh_token)
        except BackendError as exc:
            logger.info("Session refresh failed: %s", exc)
            return None
        session = _session_from_token_payload(payload)
        logger.debug("Refreshed session for %s", session.user_id)
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            payload = await self.backend.sign_in_with_password(email, password)
        except BackendError as exc:
            logger.error("Sign-in failed for %s: %s", email, exc)
            self.notifier.error(f"Login failed: {exc}")
            raise IdentityError(str(exc), exc) from exc

        session = _session_from_token_payload(payload)
        self.notifier.success("Logged in successfully")
        return session

    async def sign_up(
        self, email: str, password: str, username: str
    ) -> Optional[AuthSession]:
        """Register a user; None means email confirmation is pending."""
        username = (username or "").strip()
        if not username:
            self.notifier.error("Username is required")
            raise IdentityError("Username is required")

        try:
            payload = await self.backend.sign_up(
                email, password, data={"username": username}
            )
        except BackendError as exc:
            logger.error("Sign-up failed for %s: %s", email, exc)
            self.notifier.error(f"Sign up failed: {exc}")
            raise IdentityError(str(exc), exc) from exc

        if payload and payload.get("access_token"):
            return _session_from_token_payload(payload)
        self.notifier.success("Please check your email to confirm your account")
        return None

    async def sign_out(self, session: Optional[AuthSession]) -> None:
        if session is None:
            return
        try:
            await self.backend.sign_out(session.access_token)
        except BackendError as exc:
            logger.error("Sign-out failed for %s: %s", session.user_id, exc)
            self.notifier.error(f"Error signing out: {exc}")
            return
        self.notifier.success("Signed out successfully")
