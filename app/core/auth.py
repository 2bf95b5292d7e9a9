"""Session token transport between the browser and the server.

Tokens issued by the backend's auth service are kept in HTTP-only cookies.
API clients may send ``Authorization: Bearer <token>`` instead.
"""

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.core.config import get_settings
from app.models.auth import AuthSession

ACCESS_COOKIE = "reelshelf-access-token"
REFRESH_COOKIE = "reelshelf-refresh-token"


def read_tokens(request: Request) -> tuple[Optional[str], Optional[str]]:
    """Return (access_token, refresh_token) carried by the request."""
    auth_header = request.headers.get("Authorization")
    if auth_header:
        try:
            scheme, token = auth_header.split(" ", 1)
        except ValueError:
            return None, None
        if scheme.lower() == "bearer" and token.strip():
            return token.strip(), None
        return None, None

    return request.cookies.get(ACCESS_COOKIE), request.cookies.get(REFRESH_COOKIE)


def set_session_cookies(response: Response, session: AuthSession) -> None:
    secure = not get_settings().debug
    response.set_cookie(
        ACCESS_COOKIE,
        session.access_token,
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    if session.refresh_token:
        response.set_cookie(
            REFRESH_COOKIE,
            session.refresh_token,
            httponly=True,
            samesite="lax",
            secure=secure,
        )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """Re-issue the session cookies after a token refresh during the request.

    The session dependency stores the refreshed session on
    ``request.state.refreshed_session``; routes build their own responses,
    so the cookies are attached here on the way out.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        session = getattr(request.state, "refreshed_session", None)
        if session is not None:
            set_session_cookies(response, session)
        return response
