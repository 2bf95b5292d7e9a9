"""Identity models."""

from typing import Optional

from pydantic import BaseModel


class AuthSession(BaseModel):
    """The authenticated identity of the current user."""

    user_id: str
    email: Optional[str] = None
    access_token: str
    refresh_token: Optional[str] = None


class Profile(BaseModel):
    """A row of the ``profiles`` table."""

    id: str
    username: Optional[str] = None
