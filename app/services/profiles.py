"""Profile (username) access for the account page."""

import logging
from typing import Optional

from app.models.auth import AuthSession, Profile
from app.models.results import Result, ResultKind
from app.services.backend import BackendClient, BackendError
from app.services.notifications import Notifier

logger = logging.getLogger(__name__)

PROFILES = "profiles"


class ProfileService:
    def __init__(
        self,
        backend: BackendClient,
        notifier: Notifier,
        session: Optional[AuthSession] = None,
    ):
        self.backend = backend
        self.notifier = notifier
        self.session = session

    async def get_profile(self) -> Optional[Profile]:
        if self.session is None:
            return None
        try:
            row = await self.backend.select(
                PROFILES,
                columns="id,username",
                filters={"id": self.session.user_id},
                single=True,
                access_token=self.session.access_token,
            )
        except BackendError as exc:
            logger.error("Error fetching profile for %s: %s", self.session.user_id, exc)
            return None
        return Profile(id=str(row["id"]), username=row.get("username"))

    async def update_username(self, username: str) -> Result[Profile]:
        username = (username or "").strip()
        if not username:
            message = "Username cannot be empty"
            self.notifier.error(message)
            return Result.failure(ResultKind.INVALID, message)
        if self.session is None:
            message = "Please log in to update your profile"
            self.notifier.error(message)
            return Result.failure(ResultKind.UNAUTHENTICATED, message)

        try:
            row = await self.backend.update(
                PROFILES,
                {"username": username},
                filters={"id": self.session.user_id},
                access_token=self.session.access_token,
            )
        except BackendError as exc:
            logger.error("Error updating profile: %s", exc)
            self.notifier.error(f"Failed to update profile: {exc}")
            return Result.failure(ResultKind.REMOTE_ERROR, str(exc))

        self.notifier.success("Profile updated successfully")
        return Result.success(Profile(id=str(row["id"]), username=row.get("username")))
