"""OMDb service for searching and fetching movie details."""

import logging
from typing import Any, List, Optional

import niquests

from app.core.config import Settings
from app.models.media import Movie
from app.services.base import RemoteClient

logger = logging.getLogger(__name__)


class OMDbError(Exception):
    """Domain exception for OMDb failures."""

    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(message)
        self.original_exception = original_exception


def _optional(value: Optional[str]) -> Optional[str]:
    """OMDb reports missing values as the literal string "N/A"."""
    if value is None or value == "N/A":
        return None
    return value


def _parse_movie(item: dict) -> Movie:
    """Parse a search item or a detail record from OMDb."""
    return Movie(
        imdb_id=item["imdbID"],
        title=item.get("Title", "Unknown"),
        year=item.get("Year", ""),
        poster=_optional(item.get("Poster")),
        type=item.get("Type", "movie"),
        plot=_optional(item.get("Plot")),
        rating=_optional(item.get("imdbRating")),
        director=_optional(item.get("Director")),
        actors=_optional(item.get("Actors")),
        genre=_optional(item.get("Genre")),
        runtime=_optional(item.get("Runtime")),
    )


class OMDbClient(RemoteClient):
    """Stateless request/response mapping over the OMDb API."""

    def __init__(self, settings: Settings | None = None):
        super().__init__(settings)
        self.base_url = self._settings.omdb_base_url
        self.api_key = self._settings.omdb_api_key

    async def _get(self, params: dict[str, str]) -> dict[str, Any]:
        """GET the OMDb endpoint and return the decoded payload.

        Raises OMDbError when the call fails or OMDb reports ``Response: False``.
        """
        query = {**params, "apikey": self.api_key}
        try:
            response = await self.session.get(
                self.base_url, params=query, **self._request_kwargs()
            )
            response.raise_for_status()
            data = response.json()
        except (niquests.exceptions.RequestException, ValueError) as exc:
            raise OMDbError(f"OMDb request failed: {exc}", exc) from exc

        if not isinstance(data, dict) or data.get("Response") != "True":
            error = data.get("Error") if isinstance(data, dict) else None
            raise OMDbError(error or "OMDb reported failure")
        return data

    async def search_movies(self, query: str) -> List[Movie]:
        """Search OMDb by title; returns an empty list on any failure."""
        try:
            data = await self._get({"s": query})
            return [_parse_movie(m) for m in data.get("Search", [])]
        except OMDbError as exc:
            logger.error("Movie search failed for '%s': %s", query, exc)
            return []
        except Exception as exc:
            logger.exception("Unexpected error searching movies for '%s': %s", query, exc)
            return []

    async def get_movie_details(self, imdb_id: str) -> Optional[Movie]:
        """Fetch the full record for one movie; None on any failure."""
        try:
            data = await self._get({"i": imdb_id, "plot": "full"})
            return _parse_movie(data)
        except OMDbError as exc:
            logger.error("Movie details fetch failed for ID %s: %s", imdb_id, exc)
            return None
        except Exception as exc:
            logger.exception(
                "Unexpected error fetching movie details for ID %s: %s", imdb_id, exc
            )
            return None
