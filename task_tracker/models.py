from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TaskStatus(str, Enum):
    """Workflow state of a task. Any status is reachable from any other."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        if self is TaskStatus.PENDING:
            return "Pending"
        if self is TaskStatus.IN_PROGRESS:
            return "In Progress"
        return "Completed"


class UserRecord(BaseModel):
    """Account data returned by the auth endpoints and persisted with the token."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    username: str
    email: str
    profile_image: Optional[str] = Field(default=None, alias="profileImage")
    bio: Optional[str] = None


class AuthResponse(BaseModel):
    token: str = Field(min_length=1)
    user: UserRecord


class SessionState(BaseModel):
    """Authentication state. Token and user are always set or cleared together."""

    model_config = ConfigDict(frozen=True)

    token: Optional[str] = None
    user: Optional[UserRecord] = None
    error_message: str = ""

    @model_validator(mode="after")
    def _token_matches_user(self) -> "SessionState":
        if (self.token is None) != (self.user is None):
            raise ValueError("token and user must be set together")
        return self

    @property
    def is_logged_in(self) -> bool:
        return self.token is not None


class Task(BaseModel):
    """Task as returned by the server. Ids are always server-assigned."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    description: str = ""
    due_date: date = Field(alias="dueDate")
    status: TaskStatus = TaskStatus.PENDING
    owner_user_id: Optional[str] = Field(default=None, alias="ownerUserId")

    @model_validator(mode="before")
    @classmethod
    def _owner_from_user(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("ownerUserId") is not None or data.get("owner_user_id") is not None:
            return data

        owner = data.get("user")
        payload = dict(data)
        if isinstance(owner, dict):
            owner_id = owner.get("_id") or owner.get("id")
            payload["ownerUserId"] = str(owner_id) if owner_id is not None else None
        elif isinstance(owner, str):
            payload["ownerUserId"] = owner
        return payload

    @field_validator("due_date", mode="before")
    @classmethod
    def _date_part(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value


class TaskDraft(BaseModel):
    """Validated editable fields of a task, used for create and full update."""

    title: str
    description: str
    due_date: date

    def to_payload(self) -> dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat(),
        }


class UserStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_posts: int = Field(default=0, alias="totalPosts")
    followers: int = 0
    following: int = 0


def can_modify(task: Task, user: Optional[UserRecord]) -> bool:
    """Whether edit/delete controls are shown. The server enforces the real check."""

    if user is None or task.owner_user_id is None:
        return False
    return task.owner_user_id == user.id


__all__ = [
    "AuthResponse",
    "SessionState",
    "Task",
    "TaskDraft",
    "TaskStatus",
    "UserRecord",
    "UserStats",
    "can_modify",
]
