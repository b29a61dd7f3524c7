"""Task synchronization: fetch, mutate and reconcile the server-side task list.

The server is authoritative. Mutations never patch the local cache; a
successful mutation triggers a fresh fetch instead. At most one fetch is in
flight at a time and concurrent refresh requests join it. The refresh that
follows a mutation never joins a fetch started before the mutation finished.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional, Protocol

from task_tracker.errors import TaskTrackerError, ValidationError
from task_tracker.forms import build_task_draft
from task_tracker.models import Task, TaskDraft, TaskStatus
from task_tracker.observable import Observable

LOGGER = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load tasks"
CREATE_ERROR = "Failed to add task. Please try again."
UPDATE_ERROR = "Failed to update task"
STATUS_ERROR = "Failed to update task status"
DELETE_ERROR = "Failed to delete task"


class TaskApi(Protocol):
    async def list_tasks(self) -> list[Task]: ...

    async def create_task(self, draft: TaskDraft) -> Optional[Task]: ...

    async def update_task(self, task_id: str, draft: TaskDraft) -> Optional[Task]: ...

    async def set_task_status(self, task_id: str, status: TaskStatus) -> Optional[Task]: ...

    async def delete_task(self, task_id: str) -> None: ...


def coerce_status(status: TaskStatus | str) -> TaskStatus:
    try:
        return TaskStatus(status)
    except ValueError as exc:
        raise ValidationError(f"Unknown task status: {status}", field_errors={"status": "Unknown status"}) from exc


class TaskSyncController(Observable["TaskSyncController"]):
    def __init__(self, api: TaskApi) -> None:
        super().__init__()
        self._api = api
        self._tasks: tuple[Task, ...] = ()
        self._inflight: Optional[asyncio.Task[tuple[Task, ...]]] = None
        self.error_message = ""
        self.has_loaded = False
        self._generation = 0

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    @property
    def is_refreshing(self) -> bool:
        return self._inflight is not None

    def find(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def clear_error(self) -> None:
        self.error_message = ""
        self._notify(self)

    def reset(self) -> None:
        """Forget the cached tasks, e.g. after sign-out. The next view fetches again."""

        self._generation += 1
        self._tasks = ()
        self.error_message = ""
        self.has_loaded = False
        self._notify(self)

    async def list_tasks(self) -> tuple[Task, ...]:
        """Refresh the cache, joining the outstanding fetch if there is one."""

        inflight = self._inflight
        if inflight is None:
            inflight = asyncio.create_task(self._fetch())
            self._inflight = inflight
            self._notify(self)
        else:
            LOGGER.debug("Joining in-flight task fetch")
        return await asyncio.shield(inflight)

    async def _fetch(self) -> tuple[Task, ...]:
        generation = self._generation
        fetched: Optional[list[Task]]
        try:
            fetched = await self._api.list_tasks()
        except TaskTrackerError as exc:
            LOGGER.warning("Failed to load tasks: %s", exc)
            fetched = None
        finally:
            self._inflight = None

        if generation != self._generation:
            LOGGER.debug("Discarding task fetch that started before a reset")
            return self._tasks

        if fetched is None:
            self.error_message = LOAD_ERROR
        else:
            self._tasks = tuple(fetched)
            if self.error_message == LOAD_ERROR:
                self.error_message = ""
        self.has_loaded = True
        self._notify(self)
        return self._tasks

    async def create_task(self, title: str, description: str, due_date: date | str) -> bool:
        draft = build_task_draft(title, description, due_date)
        try:
            await self._api.create_task(draft)
        except TaskTrackerError as exc:
            return self._report_failure(CREATE_ERROR, exc)
        LOGGER.info("Created task '%s'", draft.title)
        await self._refresh_after_mutation()
        return True

    async def update_task(self, task_id: str, title: str, description: str, due_date: date | str) -> bool:
        draft = build_task_draft(title, description, due_date)
        try:
            await self._api.update_task(task_id, draft)
        except TaskTrackerError as exc:
            return self._report_failure(UPDATE_ERROR, exc)
        await self._refresh_after_mutation()
        return True

    async def set_status(self, task_id: str, status: TaskStatus | str) -> bool:
        new_status = coerce_status(status)
        try:
            await self._api.set_task_status(task_id, new_status)
        except TaskTrackerError as exc:
            return self._report_failure(STATUS_ERROR, exc)
        await self._refresh_after_mutation()
        return True

    async def delete_task(self, task_id: str) -> bool:
        """Delete unconditionally. Confirming the intent is the caller's job."""

        try:
            await self._api.delete_task(task_id)
        except TaskTrackerError as exc:
            return self._report_failure(DELETE_ERROR, exc)
        LOGGER.info("Deleted task %s", task_id)
        await self._refresh_after_mutation()
        return True

    async def _refresh_after_mutation(self) -> None:
        # A fetch already in flight may have been answered before the mutation
        # landed; let it finish and then fetch again instead of joining it.
        stale = self._inflight
        if stale is not None:
            await asyncio.shield(stale)
        await self.list_tasks()

    def _report_failure(self, message: str, exc: TaskTrackerError) -> bool:
        LOGGER.warning("%s: %s", message, exc)
        self.error_message = message
        self._notify(self)
        return False


class DeleteConfirmation:
    """Two-step delete intent held by the calling layer."""

    def __init__(self) -> None:
        self.task_id: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self.task_id is not None

    def request(self, task_id: str) -> None:
        self.task_id = task_id

    def cancel(self) -> None:
        self.task_id = None

    def confirm(self) -> str:
        if self.task_id is None:
            raise ValidationError("No delete is awaiting confirmation.")
        task_id = self.task_id
        self.task_id = None
        return task_id


__all__ = [
    "DeleteConfirmation",
    "TaskApi",
    "TaskSyncController",
    "coerce_status",
]
