"""Watchlist data access over the ``watchlists`` and ``watchlist_movies`` tables.

Nothing here raises past its own boundary: every backend failure is logged,
optionally turned into a toast, and reported through a Result.
"""

import asyncio
import logging
from typing import List, Optional

from app.models.auth import AuthSession
from app.models.media import Movie
from app.models.results import Result, ResultKind
from app.models.watchlist import (
    Watchlist,
    WatchlistUpdate,
    update_to_row,
    watchlist_from_row,
    watchlist_to_row,
)
from app.services.backend import BackendClient, BackendError
from app.services.notifications import Notifier
from app.services.omdb import OMDbClient

logger = logging.getLogger(__name__)

WATCHLISTS = "watchlists"
MEMBERSHIPS = "watchlist_movies"
NEWEST_FIRST = "created_at.desc"


class WatchlistService:
    """Watchlist operations performed on behalf of one (possibly anonymous) user."""

    def __init__(
        self,
        backend: BackendClient,
        movies: OMDbClient,
        notifier: Notifier,
        session: Optional[AuthSession] = None,
    ):
        self.backend = backend
        self.movies = movies
        self.notifier = notifier
        self.session = session

    @property
    def _token(self) -> Optional[str]:
        return self.session.access_token if self.session else None

    def _require_session(self, action: str) -> Optional[Result]:
        if self.session is None:
            message = f"Please log in to {action}"
            self.notifier.error(message)
            return Result.failure(ResultKind.UNAUTHENTICATED, message)
        return None

    async def create(
        self, name: str, description: str = "", is_public: bool = False
    ) -> Result[Watchlist]:
        name = (name or "").strip()
        description = (description or "").strip()
        if not name:
            message = "Please enter a name for your watchlist"
            self.notifier.error(message)
            return Result.failure(ResultKind.INVALID, message)

        denied = self._require_session("create a watchlist")
        if denied:
            return denied

        row = watchlist_to_row(name, description, is_public, self.session.user_id)
        try:
            created = await self.backend.insert(WATCHLISTS, row, access_token=self._token)
        except BackendError as exc:
            logger.error("Error creating watchlist: %s", exc)
            self.notifier.error(f"Failed to create watchlist: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc))

        watchlist = watchlist_from_row(created)
        logger.info("Created watchlist %s for user %s", watchlist.id, watchlist.user_id)
        return Result.success(watchlist)

    async def list_mine(self) -> Result[List[Watchlist]]:
        """The caller's watchlists, newest first; row rules scope the query."""
        try:
            rows = await self.backend.select(
                WATCHLISTS, order=NEWEST_FIRST, access_token=self._token
            )
        except BackendError as exc:
            logger.error("Error fetching watchlists: %s", exc)
            self.notifier.error(f"Failed to fetch watchlists: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=[])
        return Result.success([watchlist_from_row(r) for r in rows or []])

    async def list_public(self) -> Result[List[Watchlist]]:
        try:
            rows = await self.backend.select(
                WATCHLISTS,
                filters={"is_public": True},
                order=NEWEST_FIRST,
                access_token=self._token,
            )
        except BackendError as exc:
            logger.error("Error fetching public watchlists: %s", exc)
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=[])
        return Result.success([watchlist_from_row(r) for r in rows or []])

    async def get_by_id(self, watchlist_id: str) -> Result[Watchlist]:
        try:
            row = await self.backend.select(
                WATCHLISTS,
                filters={"id": watchlist_id},
                single=True,
                access_token=self._token,
            )
        except BackendError as exc:
            if exc.is_not_found:
                return Result.failure(ResultKind.NOT_FOUND, "Watchlist not found")
            logger.error("Error fetching watchlist %s: %s", watchlist_id, exc)
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc))
        return Result.success(watchlist_from_row(row))

    async def update(
        self, watchlist_id: str, update: WatchlistUpdate
    ) -> Result[Watchlist]:
        """Write only the supplied fields; the rest are left untouched."""
        if update.name is not None:
            update = update.model_copy(update={"name": update.name.strip()})
            if not update.name:
                message = "Please enter a name for your watchlist"
                self.notifier.error(message)
                return Result.failure(ResultKind.INVALID, message)

        denied = self._require_session("edit a watchlist")
        if denied:
            return denied

        if update.is_empty():
            return await self.get_by_id(watchlist_id)

        try:
            row = await self.backend.update(
                WATCHLISTS,
                update_to_row(update),
                filters={"id": watchlist_id},
                access_token=self._token,
            )
        except BackendError as exc:
            logger.error("Error updating watchlist %s: %s", watchlist_id, exc)
            self.notifier.error(f"Failed to update watchlist: {exc}")
            kind = ResultKind.NOT_FOUND if exc.is_not_found else ResultKind.REMOTE_ERROR
            return Result.failure(kind, str(exc))
        return Result.success(watchlist_from_row(row))

    async def delete(self, watchlist_id: str) -> Result[bool]:
        denied = self._require_session("delete a watchlist")
        if denied:
            return denied.model_copy(update={"value": False})

        try:
            await self.backend.delete(
                WATCHLISTS, filters={"id": watchlist_id}, access_token=self._token
            )
        except BackendError as exc:
            logger.error("Error deleting watchlist %s: %s", watchlist_id, exc)
            self.notifier.error(f"Failed to delete watchlist: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=False)
        logger.info("Deleted watchlist %s", watchlist_id)
        return Result.success(True)

    async def add_movie(self, watchlist_id: str, movie_id: str) -> Result[bool]:
        """Add a movie; an existing membership is the benign DUPLICATE outcome."""
        denied = self._require_session("add movies to watchlists")
        if denied:
            return denied.model_copy(update={"value": False})

        try:
            await self.backend.insert(
                MEMBERSHIPS,
                {"watchlist_id": watchlist_id, "movie_id": movie_id},
                returning=False,
                access_token=self._token,
            )
        except BackendError as exc:
            if exc.is_duplicate:
                logger.info("Movie %s already in watchlist %s", movie_id, watchlist_id)
                return Result.failure(ResultKind.DUPLICATE, str(exc), value=False)
            logger.error("Error adding movie to watchlist: %s", exc)
            self.notifier.error(f"Failed to add movie to watchlist: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=False)
        return Result.success(True)

    async def remove_movie(self, watchlist_id: str, movie_id: str) -> Result[bool]:
        denied = self._require_session("remove movies from watchlists")
        if denied:
            return denied.model_copy(update={"value": False})

        try:
            await self.backend.delete(
                MEMBERSHIPS,
                filters={"watchlist_id": watchlist_id, "movie_id": movie_id},
                access_token=self._token,
            )
        except BackendError as exc:
            logger.error("Error removing movie from watchlist: %s", exc)
            self.notifier.error(f"Failed to remove movie from watchlist: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=False)
        return Result.success(True)

    async def list_movies(self, watchlist_id: str) -> Result[List[Movie]]:
        """Resolve every member through OMDb concurrently.

        Members whose lookup fails are dropped, so the result can be shorter
        than the membership.
        """
        try:
            rows = await self.backend.select(
                MEMBERSHIPS,
                columns="movie_id",
                filters={"watchlist_id": watchlist_id},
                access_token=self._token,
            )
        except BackendError as exc:
            logger.error("Error fetching watchlist movies: %s", exc)
            self.notifier.error(f"Failed to fetch watchlist movies: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=[])

        if not rows:
            return Result.success([])

        details = await asyncio.gather(
            *[self.movies.get_movie_details(r["movie_id"]) for r in rows]
        )
        movies = [m for m in details if m is not None]
        if len(movies) < len(rows):
            logger.warning(
                "Dropped %d of %d movies in watchlist %s after failed lookups",
                len(rows) - len(movies),
                len(rows),
                watchlist_id,
            )
        return Result.success(movies)

    async def list_watchlists_containing(self, movie_id: str) -> Result[List[str]]:
        try:
            rows = await self.backend.select(
                MEMBERSHIPS,
                columns="watchlist_id",
                filters={"movie_id": movie_id},
                access_token=self._token,
            )
        except BackendError as exc:
            logger.error("Error checking watchlists for movie %s: %s", movie_id, exc)
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc), value=[])
        return Result.success([str(r["watchlist_id"]) for r in rows or []])
