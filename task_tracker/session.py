"""Session store: a reducer-driven state machine over authentication state.

The persisted copy (``token`` and ``user`` keys) is always written or removed
before the in-memory transition, so a cold start never observes a session the
store claimed but storage does not back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import ValidationError as SchemaError

from task_tracker.constants import SESSION_KEYS, TOKEN_KEY, USER_KEY
from task_tracker.errors import ApiError, AuthError, NetworkError, TaskTrackerError
from task_tracker.models import AuthResponse, SessionState, UserRecord
from task_tracker.observable import Observable
from task_tracker.storage import PersistenceAdapter

LOGGER = logging.getLogger(__name__)

SIGN_UP_FALLBACK = "Something went wrong with sign up"
SIGN_IN_FALLBACK = "Invalid username or password"
RESTORE_ERROR = "Error restoring session"
SAVE_ERROR = "Error saving session"
SIGN_OUT_ERROR = "Error signing out"


class AuthApi(Protocol):
    async def register(self, *, username: str, email: str, password: str) -> AuthResponse: ...

    async def login(self, *, username: str, password: str) -> AuthResponse: ...


class SessionActionType(str, Enum):
    ADD_ERROR = "add_error"
    SIGN_IN = "signin"
    RESTORE = "restore"
    CLEAR_ERROR = "clear_error_message"
    SIGN_OUT = "signout"


@dataclass(frozen=True)
class SessionAction:
    type: SessionActionType
    token: Optional[str] = None
    user: Optional[UserRecord] = None
    error_message: str = ""


def session_reducer(state: SessionState, action: SessionAction) -> SessionState:
    """Return the state that follows ``action``. Pure; never touches storage."""

    if action.type is SessionActionType.ADD_ERROR:
        return state.model_copy(update={"error_message": action.error_message})
    if action.type is SessionActionType.SIGN_IN:
        return SessionState(token=action.token, user=action.user, error_message="")
    if action.type is SessionActionType.RESTORE:
        return SessionState(token=action.token, user=action.user, error_message=state.error_message)
    if action.type is SessionActionType.CLEAR_ERROR:
        return state.model_copy(update={"error_message": ""})
    if action.type is SessionActionType.SIGN_OUT:
        return SessionState()
    return state


def serialize_user(user: UserRecord) -> str:
    return user.model_dump_json(by_alias=True, exclude_none=True)


def parse_persisted_user(raw: str) -> UserRecord:
    """Validate a persisted user record. Corrupt data is an AuthError."""

    try:
        return UserRecord.model_validate_json(raw)
    except SchemaError as exc:
        raise AuthError("Persisted user record is invalid.") from exc


class SessionStore(Observable[SessionState]):
    """Authentication state container with injected API and persistence collaborators.

    Actions are not serialized against each other: if two run concurrently the
    last one to complete determines the final state.
    """

    def __init__(
        self,
        api: AuthApi,
        storage: PersistenceAdapter,
        *,
        initial_state: Optional[SessionState] = None,
    ) -> None:
        super().__init__()
        self._api = api
        self._storage = storage
        self._state = initial_state or SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def token(self) -> Optional[str]:
        return self._state.token

    def dispatch(self, action: SessionAction) -> SessionState:
        self._state = session_reducer(self._state, action)
        self._notify(self._state)
        return self._state

    async def sign_up(self, username: str, email: str, password: str) -> bool:
        return await self._authenticate(
            lambda: self._api.register(username=username, email=email, password=password),
            fallback=SIGN_UP_FALLBACK,
            action_name="sign up",
        )

    async def sign_in(self, username: str, password: str) -> bool:
        return await self._authenticate(
            lambda: self._api.login(username=username, password=password),
            fallback=SIGN_IN_FALLBACK,
            action_name="sign in",
        )

    async def try_restore_session(self) -> bool:
        try:
            token = await self._storage.get_item(TOKEN_KEY)
            raw_user = await self._storage.get_item(USER_KEY)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to read persisted session: %s", exc)
            self.dispatch(SessionAction(SessionActionType.ADD_ERROR, error_message=RESTORE_ERROR))
            return False

        if not token or not raw_user:
            return False

        try:
            user = parse_persisted_user(raw_user)
        except AuthError as exc:
            LOGGER.warning("Discarding persisted session: %s", exc)
            self.dispatch(SessionAction(SessionActionType.ADD_ERROR, error_message=RESTORE_ERROR))
            return False

        LOGGER.info("Restored session for user %s", user.id)
        self.dispatch(SessionAction(SessionActionType.RESTORE, token=token, user=user))
        return True

    async def sign_out(self) -> bool:
        removed = True
        try:
            await self._storage.multi_remove(SESSION_KEYS)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to remove persisted session: %s", exc)
            removed = False

        self.dispatch(SessionAction(SessionActionType.SIGN_OUT))
        if not removed:
            self.dispatch(SessionAction(SessionActionType.ADD_ERROR, error_message=SIGN_OUT_ERROR))
        LOGGER.info("Signed out")
        return removed

    def clear_error(self) -> None:
        self.dispatch(SessionAction(SessionActionType.CLEAR_ERROR))

    async def _authenticate(
        self,
        call: Callable[[], Awaitable[AuthResponse]],
        *,
        fallback: str,
        action_name: str,
    ) -> bool:
        try:
            response = await call()
        except (ApiError, AuthError, NetworkError) as exc:
            LOGGER.warning("%s failed: %s", action_name.capitalize(), exc)
            self.dispatch(SessionAction(SessionActionType.ADD_ERROR, error_message=_user_message(exc, fallback)))
            return False

        try:
            await self._storage.multi_set({TOKEN_KEY: response.token, USER_KEY: serialize_user(response.user)})
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to persist session after %s: %s", action_name, exc)
            self.dispatch(SessionAction(SessionActionType.ADD_ERROR, error_message=SAVE_ERROR))
            return False

        LOGGER.info("Completed %s for user %s", action_name, response.user.id)
        self.dispatch(SessionAction(SessionActionType.SIGN_IN, token=response.token, user=response.user))
        return True


def _user_message(exc: TaskTrackerError, fallback: str) -> str:
    if isinstance(exc, ApiError) and exc.server_message:
        return exc.server_message
    return fallback


__all__ = [
    "AuthApi",
    "SessionAction",
    "SessionActionType",
    "SessionStore",
    "parse_persisted_user",
    "serialize_user",
    "session_reducer",
]
