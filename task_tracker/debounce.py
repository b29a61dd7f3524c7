"""Cancellable scheduled calls and a per-field debounce built on them."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, TypeVar

from task_tracker.constants import PASSWORD_DEBOUNCE_SECONDS

LOGGER = logging.getLogger(__name__)

ValueT = TypeVar("ValueT")


class CancelHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock plus timer facility. Times are in seconds."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> CancelHandle: ...


class AsyncioScheduler:
    """Schedule callbacks on an asyncio event loop (the running one by default)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._resolve_loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> CancelHandle:
        return self._resolve_loop().call_later(delay, callback)


class ScheduledTask:
    """A callback that runs at most once, unless cancelled first."""

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._fired = False
        self._cancelled = False
        self.due_at = scheduler.now() + delay
        self._handle = scheduler.call_later(delay, self._run)

    @property
    def active(self) -> bool:
        return not self._fired and not self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> bool:
        if not self.active:
            return False
        self._cancelled = True
        self._handle.cancel()
        return True

    def _run(self) -> None:
        if not self.active:
            return
        self._fired = True
        self._callback()


@dataclass(frozen=True)
class PendingValidation(Generic[ValueT]):
    field: str
    scheduled_value: ValueT
    due_at: float


class DebouncedValidator(Generic[ValueT]):
    """Keep at most one scheduled validation per field.

    Scheduling a field cancels its previous timer. ``on_fire(field, value)``
    runs once the field has been quiet for ``delay`` seconds.
    """

    def __init__(
        self,
        on_fire: Callable[[str, ValueT], None],
        *,
        scheduler: Scheduler,
        delay: float = PASSWORD_DEBOUNCE_SECONDS,
    ) -> None:
        self._on_fire = on_fire
        self._scheduler = scheduler
        self.delay = delay
        self._timers: dict[str, tuple[ScheduledTask, PendingValidation[ValueT]]] = {}

    def schedule(self, field: str, value: ValueT) -> PendingValidation[ValueT]:
        self.cancel(field)
        task = ScheduledTask(self._scheduler, self.delay, lambda: self._fire(field))
        pending = PendingValidation(field=field, scheduled_value=value, due_at=task.due_at)
        self._timers[field] = (task, pending)
        return pending

    def pending(self, field: str) -> Optional[PendingValidation[ValueT]]:
        entry = self._timers.get(field)
        return entry[1] if entry is not None else None

    @property
    def has_pending(self) -> bool:
        return bool(self._timers)

    def cancel(self, field: str) -> bool:
        entry = self._timers.pop(field, None)
        if entry is None:
            return False
        return entry[0].cancel()

    def cancel_all(self) -> int:
        cancelled = 0
        for field in list(self._timers):
            if self.cancel(field):
                cancelled += 1
        if cancelled:
            LOGGER.debug("Cancelled %s pending validation(s)", cancelled)
        return cancelled

    def _fire(self, field: str) -> None:
        entry = self._timers.pop(field, None)
        if entry is None:
            return
        self._on_fire(field, entry[1].scheduled_value)


__all__ = [
    "AsyncioScheduler",
    "CancelHandle",
    "DebouncedValidator",
    "PendingValidation",
    "ScheduledTask",
    "Scheduler",
]
