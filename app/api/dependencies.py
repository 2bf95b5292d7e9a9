"""FastAPI dependencies building the explicit per-request context."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request

from app.core.auth import read_tokens
from app.models.auth import AuthSession
from app.services.backend import BackendClient
from app.services.identity import IdentityProvider
from app.services.notifications import Notifier
from app.services.omdb import OMDbClient
from app.services.profiles import ProfileService
from app.services.watchlists import WatchlistService


@lru_cache
def get_omdb_client() -> OMDbClient:
    """Process-wide OMDb client (closed in the app lifespan)."""
    return OMDbClient()


@lru_cache
def get_backend_client() -> BackendClient:
    """Process-wide backend client (closed in the app lifespan)."""
    return BackendClient()


def get_notifier() -> Notifier:
    return Notifier()


def get_identity_provider(
    backend: BackendClient = Depends(get_backend_client),
    notifier: Notifier = Depends(get_notifier),
) -> IdentityProvider:
    return IdentityProvider(backend, notifier)


async def get_current_session(
    request: Request,
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[AuthSession]:
    access_token, refresh_token = read_tokens(request)
    session = await identity.current_session(access_token, refresh_token)
    if session is not None and session.access_token != access_token:
        request.state.refreshed_session = session
    return session


def get_watchlist_service(
    backend: BackendClient = Depends(get_backend_client),
    movies: OMDbClient = Depends(get_omdb_client),
    notifier: Notifier = Depends(get_notifier),
    session: Optional[AuthSession] = Depends(get_current_session),
) -> WatchlistService:
    return WatchlistService(backend, movies, notifier, session)


def get_profile_service(
    backend: BackendClient = Depends(get_backend_client),
    notifier: Notifier = Depends(get_notifier),
    session: Optional[AuthSession] = Depends(get_current_session),
) -> ProfileService:
    return ProfileService(backend, notifier, session)
