"""Media models for OMDb data."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Movie(BaseModel):
    """A movie as returned by OMDb (search summary or full record).

    Search results only carry ``imdb_id``, ``title``, ``year``, ``poster`` and
    ``type``; the remaining fields are filled by a detail lookup.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    imdb_id: str
    title: str
    year: str = ""
    poster: Optional[str] = None
    type: str = "movie"
    plot: Optional[str] = None
    rating: Optional[str] = None
    director: Optional[str] = None
    actors: Optional[str] = None
    genre: Optional[str] = None  # comma-joined, e.g. "Drama, Crime"
    runtime: Optional[str] = None

    @property
    def genres(self) -> List[str]:
        """Genre list split from the comma-joined ``genre`` string."""
        if not self.genre:
            return []
        return [g.strip() for g in self.genre.split(",") if g.strip()]
