from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError as SchemaError

from task_tracker.config import DEFAULT_TIMEOUT_SECONDS
from task_tracker.errors import ApiError, AuthError, ConflictError, NetworkError, conflict_field
from task_tracker.models import AuthResponse, Task, TaskDraft, TaskStatus, UserStats

LOGGER = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]

_GENERIC_ERROR = "Task service request failed."
_UNEXPECTED_RESPONSE = "Task service returned an unexpected response."


class TaskApiClient:
    """Async client for the task REST service. Authenticated calls send a bearer token."""

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: Optional[TokenProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TaskApiClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def register(self, *, username: str, email: str, password: str) -> AuthResponse:
        try:
            payload = await self._request(
                "POST",
                "/users/register",
                json={"username": username, "email": email, "password": password},
                authenticated=False,
            )
        except ApiError as exc:
            field = conflict_field(exc.server_message or "")
            if exc.status_code == 409 or field is not None:
                raise ConflictError(
                    exc.message,
                    status_code=exc.status_code,
                    field=field,
                    server_message=exc.server_message,
                ) from exc
            raise
        return _parse_auth_response(payload)

    async def login(self, *, username: str, password: str) -> AuthResponse:
        payload = await self._request(
            "POST",
            "/users/login",
            json={"username": username, "password": password},
            authenticated=False,
        )
        return _parse_auth_response(payload)

    async def get_user_stats(self, user_id: str) -> UserStats:
        payload = await self._request("GET", f"/users/{user_id}/stats")
        if not isinstance(payload, dict):
            raise ApiError(_UNEXPECTED_RESPONSE, status_code=200)
        try:
            return UserStats.model_validate(payload)
        except SchemaError as exc:
            raise ApiError(_UNEXPECTED_RESPONSE, status_code=200) from exc

    async def list_tasks(self) -> list[Task]:
        payload = await self._request("GET", "/tasks")
        if not isinstance(payload, list):
            raise ApiError(_UNEXPECTED_RESPONSE, status_code=200)
        try:
            return [Task.model_validate(item) for item in payload]
        except SchemaError as exc:
            raise ApiError(_UNEXPECTED_RESPONSE, status_code=200) from exc

    async def create_task(self, draft: TaskDraft) -> Optional[Task]:
        body: dict[str, Any] = {**draft.to_payload(), "status": TaskStatus.PENDING.value}
        payload = await self._request("POST", "/tasks", json=body)
        return _optional_task(payload)

    async def update_task(self, task_id: str, draft: TaskDraft) -> Optional[Task]:
        payload = await self._request("PUT", f"/tasks/{task_id}", json=draft.to_payload())
        return _optional_task(payload)

    async def set_task_status(self, task_id: str, status: TaskStatus) -> Optional[Task]:
        payload = await self._request("PUT", f"/tasks/{task_id}/status", json={"status": status.value})
        return _optional_task(payload)

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        headers: dict[str, str] = {"Accept": "application/json"}
        if authenticated:
            token = self.token_provider() if self.token_provider is not None else None
            if not token:
                raise AuthError("Not signed in.")
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = await self._client.request(method, url, headers=headers, json=json)
        except httpx.RequestError as exc:
            LOGGER.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(_GENERIC_ERROR) from exc

        if response.status_code >= 400:
            server_message = _extract_error_message(response)
            LOGGER.warning("%s %s returned %s: %s", method, path, response.status_code, server_message)
            raise ApiError(
                server_message or _GENERIC_ERROR,
                status_code=response.status_code,
                server_message=server_message,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None


def _parse_auth_response(payload: Any) -> AuthResponse:
    try:
        return AuthResponse.model_validate(payload)
    except SchemaError as exc:
        raise AuthError("Unexpected response from the sign-in service.") from exc


def _optional_task(payload: Any) -> Optional[Task]:
    if not isinstance(payload, dict):
        return None
    try:
        return Task.model_validate(payload)
    except SchemaError:
        LOGGER.debug("Ignoring unparseable task payload in mutation response")
        return None


def _extract_error_message(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
        error = payload.get("error")
        if isinstance(error, str) and error:
            return error
    return None


__all__ = ["TaskApiClient", "TokenProvider"]
