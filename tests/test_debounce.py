from __future__ import annotations

import asyncio

import pytest

from fakes import FakeScheduler
from task_tracker.debounce import AsyncioScheduler, DebouncedValidator, ScheduledTask


def test_scheduled_task_fires_once(scheduler: FakeScheduler) -> None:
    calls: list[str] = []
    task = ScheduledTask(scheduler, 0.5, lambda: calls.append("fired"))

    assert task.due_at == 0.5
    scheduler.advance(1.0)

    assert calls == ["fired"]
    assert task.fired
    assert not task.cancel()


def test_cancelled_task_never_fires(scheduler: FakeScheduler) -> None:
    calls: list[str] = []
    task = ScheduledTask(scheduler, 0.5, lambda: calls.append("fired"))

    assert task.cancel()
    scheduler.advance(1.0)

    assert calls == []
    assert not task.active


def test_rescheduling_restarts_the_quiet_period(scheduler: FakeScheduler) -> None:
    fired: list[tuple[str, str]] = []
    validator: DebouncedValidator[str] = DebouncedValidator(
        lambda field, value: fired.append((field, value)), scheduler=scheduler, delay=0.5
    )

    validator.schedule("password", "a")
    scheduler.advance(0.4)
    validator.schedule("password", "ab")
    scheduler.advance(0.4)

    assert fired == []
    pending = validator.pending("password")
    assert pending is not None and pending.scheduled_value == "ab"

    scheduler.advance(0.1)

    assert fired == [("password", "ab")]
    assert not validator.has_pending


def test_fields_debounce_independently(scheduler: FakeScheduler) -> None:
    fired: list[str] = []
    validator: DebouncedValidator[str] = DebouncedValidator(
        lambda field, value: fired.append(field), scheduler=scheduler, delay=0.5
    )

    validator.schedule("password", "a")
    scheduler.advance(0.3)
    validator.schedule("confirm_password", "a")
    scheduler.advance(0.3)

    assert fired == ["password"]
    scheduler.advance(0.3)
    assert fired == ["password", "confirm_password"]


def test_cancel_all_drops_every_timer(scheduler: FakeScheduler) -> None:
    fired: list[str] = []
    validator: DebouncedValidator[str] = DebouncedValidator(
        lambda field, value: fired.append(field), scheduler=scheduler
    )
    validator.schedule("password", "a")
    validator.schedule("confirm_password", "b")

    assert validator.cancel_all() == 2
    scheduler.advance(5.0)

    assert fired == []
    assert scheduler.active_handles == []


@pytest.mark.asyncio
async def test_asyncio_scheduler_runs_on_loop() -> None:
    fired = asyncio.Event()
    validator: DebouncedValidator[str] = DebouncedValidator(
        lambda field, value: fired.set(), scheduler=AsyncioScheduler(), delay=0.01
    )

    validator.schedule("password", "Secret1!")

    await asyncio.wait_for(fired.wait(), timeout=1.0)
    assert not validator.has_pending
