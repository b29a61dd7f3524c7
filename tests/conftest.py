from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict

import pytest
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fakes import FakeAuthApi, FakeScheduler, FakeTaskApi  # noqa: E402
from task_tracker.models import AuthResponse, UserRecord  # noqa: E402
from task_tracker.session import SessionStore  # noqa: E402
from task_tracker.storage import MemoryPersistenceAdapter  # noqa: E402


@pytest.fixture()
def session_state(monkeypatch: pytest.MonkeyPatch) -> Dict[str, object]:
    state: Dict[str, object] = {}
    monkeypatch.setattr(st, "session_state", state, raising=False)
    return state


@pytest.fixture()
def user() -> UserRecord:
    return UserRecord(id="u1", username="ada", email="ada@example.com")


@pytest.fixture()
def auth_api(user: UserRecord) -> FakeAuthApi:
    return FakeAuthApi(AuthResponse(token="tok-123", user=user))


@pytest.fixture()
def storage() -> MemoryPersistenceAdapter:
    return MemoryPersistenceAdapter()


@pytest.fixture()
def session(auth_api: FakeAuthApi, storage: MemoryPersistenceAdapter) -> SessionStore:
    return SessionStore(auth_api, storage)


@pytest.fixture()
def task_api() -> FakeTaskApi:
    return FakeTaskApi(owner_id="u1")


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()
