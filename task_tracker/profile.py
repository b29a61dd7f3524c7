from __future__ import annotations

import logging
from typing import Optional, Protocol

from task_tracker.errors import TaskTrackerError
from task_tracker.models import UserRecord, UserStats
from task_tracker.observable import Observable
from task_tracker.session import SessionStore

LOGGER = logging.getLogger(__name__)

STATS_ERROR = "Failed to load user statistics"


class StatsApi(Protocol):
    async def get_user_stats(self, user_id: str) -> UserStats: ...


class ProfileController(Observable["ProfileController"]):
    """Profile view state: the signed-in user plus their activity stats."""

    def __init__(self, api: StatsApi, session: SessionStore) -> None:
        super().__init__()
        self._api = api
        self._session = session
        self.stats = UserStats()
        self.loading = False
        self.has_loaded_stats = False
        self.error_message = ""

    @property
    def user(self) -> Optional[UserRecord]:
        return self._session.state.user

    @property
    def display_name(self) -> str:
        return self.user.username if self.user else "Username"

    @property
    def display_email(self) -> str:
        return self.user.email if self.user else "email@example.com"

    @property
    def display_bio(self) -> str:
        if self.user and self.user.bio:
            return self.user.bio
        return "No bio added yet"

    async def load_stats(self) -> bool:
        """Fetch stats for the current user. Previous stats survive a failure."""

        user = self.user
        if user is None:
            return False

        self.loading = True
        self._notify(self)
        try:
            self.stats = await self._api.get_user_stats(user.id)
        except TaskTrackerError as exc:
            LOGGER.warning("Failed to load stats for user %s: %s", user.id, exc)
            self.error_message = STATS_ERROR
            return False
        else:
            self.error_message = ""
            return True
        finally:
            self.loading = False
            self.has_loaded_stats = True
            self._notify(self)

    async def sign_out(self) -> bool:
        signed_out = await self._session.sign_out()
        self.stats = UserStats()
        self.has_loaded_stats = False
        self._notify(self)
        return signed_out


__all__ = ["ProfileController", "StatsApi"]
