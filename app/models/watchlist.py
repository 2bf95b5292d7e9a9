"""Watchlist models and the storage row mapping.

Rows coming from the ``watchlists`` table are translated field by field; the
application models serialize with camelCase aliases (``isPublic``, ``userId``)
for the JSON API.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Watchlist(BaseModel):
    """A named, owned collection of movie references."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    is_public: bool = False
    user_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WatchlistUpdate(BaseModel):
    """Partial update; fields left as None are not written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None

    def is_empty(self) -> bool:
        return self.name is None and self.description is None and self.is_public is None


class NewWatchlist(BaseModel):
    """Request body for creating a watchlist through the JSON API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    is_public: bool = False


def watchlist_from_row(row: dict[str, Any]) -> Watchlist:
    """Map a ``watchlists`` row to a Watchlist."""
    return Watchlist(
        id=str(row["id"]),
        name=row["name"],
        description=row.get("description") or "",
        is_public=bool(row.get("is_public")),
        user_id=str(row["user_id"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def watchlist_to_row(
    name: str, description: str, is_public: bool, user_id: str
) -> dict[str, Any]:
    """Build the insert payload for a new ``watchlists`` row."""
    return {
        "name": name,
        "description": description,
        "is_public": is_public,
        "user_id": user_id,
    }


def update_to_row(update: WatchlistUpdate) -> dict[str, Any]:
    """Build the PATCH payload containing only the supplied fields."""
    row: dict[str, Any] = {}
    if update.name is not None:
        row["name"] = update.name
    if update.description is not None:
        row["description"] = update.description
    if update.is_public is not None:
        row["is_public"] = update.is_public
    return row
