from __future__ import annotations

import pytest

from fakes import FakeTaskApi
from task_tracker.models import UserStats
from task_tracker.profile import STATS_ERROR, ProfileController
from task_tracker.session import SessionStore


def test_placeholders_when_signed_out(session: SessionStore, task_api: FakeTaskApi) -> None:
    profile = ProfileController(task_api, session)

    assert profile.display_name == "Username"
    assert profile.display_email == "email@example.com"
    assert profile.display_bio == "No bio added yet"


@pytest.mark.asyncio
async def test_load_stats_requires_user(session: SessionStore, task_api: FakeTaskApi) -> None:
    profile = ProfileController(task_api, session)

    assert not await profile.load_stats()

    assert not profile.has_loaded_stats


@pytest.mark.asyncio
async def test_load_stats_for_signed_in_user(session: SessionStore, task_api: FakeTaskApi) -> None:
    await session.sign_in("ada", "Secret1!")
    profile = ProfileController(task_api, session)

    assert await profile.load_stats()

    assert profile.display_name == "ada"
    assert profile.stats == UserStats(total_posts=3, followers=5, following=8)
    assert profile.has_loaded_stats
    assert not profile.loading


@pytest.mark.asyncio
async def test_failed_stats_keep_previous_values(session: SessionStore, task_api: FakeTaskApi) -> None:
    await session.sign_in("ada", "Secret1!")
    profile = ProfileController(task_api, session)
    await profile.load_stats()
    task_api.fail_stats = True

    assert not await profile.load_stats()

    assert profile.error_message == STATS_ERROR
    assert profile.stats.followers == 5


@pytest.mark.asyncio
async def test_sign_out_resets_profile(session: SessionStore, task_api: FakeTaskApi) -> None:
    await session.sign_in("ada", "Secret1!")
    profile = ProfileController(task_api, session)
    await profile.load_stats()

    assert await profile.sign_out()

    assert profile.user is None
    assert profile.stats == UserStats()
    assert not profile.has_loaded_stats
