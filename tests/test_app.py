from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

import app
from fakes import FakeTaskApi
from task_tracker.config import load_config
from task_tracker.constants import (
    PROFILE_TAB,
    SS_ACTIVE_TAB,
    SS_EDIT_TASK_ID,
    SS_EVENT_LOOP,
    SS_PROFILE,
    SS_REGISTRATION_FORM,
    SS_SESSION_STORE,
    SS_TAB_ROUTER,
    SS_TASK_SYNC,
    TASKS_TAB,
    TOKEN_KEY,
    USER_KEY,
)
from task_tracker.debounce import AsyncioScheduler
from task_tracker.forms import CONFIRM_PASSWORD, PASSWORD, PASSWORDS_DO_NOT_MATCH, USERNAME, RegistrationForm
from task_tracker.models import SessionState
from task_tracker.navigation import DoubleTapState, TabGestureRouter
from task_tracker.session import SessionStore
from task_tracker.tasks import TaskSyncController


def test_navigator_reads_and_writes_active_tab(session_state: Dict[str, object]) -> None:
    navigator = app.SessionStateNavigator()

    assert navigator.is_focused(TASKS_TAB)
    navigator.navigate("Profile")

    assert session_state[SS_ACTIVE_TAB] == "Profile"
    assert not navigator.is_focused(TASKS_TAB)


def test_run_async_reuses_session_loop(session_state: Dict[str, object]) -> None:
    async def _answer() -> int:
        return 42

    assert app.run_async(_answer()) == 42
    loop = session_state[SS_EVENT_LOOP]
    assert app.run_async(_answer()) == 42
    assert session_state[SS_EVENT_LOOP] is loop


def test_bootstrap_restores_saved_session(session_state: Dict[str, object], tmp_path: Path) -> None:
    session_file = tmp_path / "session.json"
    session_file.write_text(
        json.dumps({TOKEN_KEY: "tok-1", USER_KEY: json.dumps({"_id": "u1", "username": "ada", "email": "a@b.co"})}),
        encoding="utf-8",
    )
    config = load_config(env={"TASK_TRACKER_SESSION_FILE": str(session_file)})

    app.bootstrap(config)

    session = session_state[SS_SESSION_STORE]
    assert isinstance(session, SessionStore)
    assert session.state.is_logged_in
    assert session.state.user is not None and session.state.user.username == "ada"
    assert isinstance(session_state[SS_TASK_SYNC], TaskSyncController)
    assert isinstance(session_state[SS_TAB_ROUTER], TabGestureRouter)
    assert session_state[SS_ACTIVE_TAB] == TASKS_TAB


def test_bootstrap_runs_once(session_state: Dict[str, object], tmp_path: Path) -> None:
    config = load_config(env={"TASK_TRACKER_SESSION_FILE": str(tmp_path / "session.json")})

    app.bootstrap(config)
    first = session_state[SS_SESSION_STORE]
    app.bootstrap(config)

    assert session_state[SS_SESSION_STORE] is first
    assert not first.state.is_logged_in


def _write_saved_session(path: Path) -> None:
    path.write_text(
        json.dumps({TOKEN_KEY: "tok-1", USER_KEY: json.dumps({"_id": "u1", "username": "ada", "email": "a@b.co"})}),
        encoding="utf-8",
    )


def test_sign_out_drops_previous_user_state(session_state: Dict[str, object], tmp_path: Path) -> None:
    session_file = tmp_path / "session.json"
    _write_saved_session(session_file)
    app.bootstrap(load_config(env={"TASK_TRACKER_SESSION_FILE": str(session_file)}))

    task_api = FakeTaskApi(owner_id="u1")
    task_api.seed("Ada private task")
    sync = TaskSyncController(task_api)
    session_state[SS_TASK_SYNC] = sync
    app.run_async(sync.list_tasks())
    router = session_state[SS_TAB_ROUTER]
    assert isinstance(router, TabGestureRouter)
    router.on_tab_press(TASKS_TAB, now=10.0)
    session_state[SS_EDIT_TASK_ID] = "t1"
    session_state[SS_ACTIVE_TAB] = PROFILE_TAB

    app.run_async(session_state[SS_PROFILE].sign_out())

    assert sync.tasks == ()
    assert not sync.has_loaded
    assert router.state == DoubleTapState()
    assert SS_EDIT_TASK_ID not in session_state
    assert session_state[SS_ACTIVE_TAB] == TASKS_TAB


def test_signed_out_reset_without_loaded_tasks(session_state: Dict[str, object]) -> None:
    sync = TaskSyncController(FakeTaskApi())
    session_state[SS_TASK_SYNC] = sync

    app.reset_signed_out_state(SessionState(error_message="Invalid username or password"))

    assert session_state[SS_ACTIVE_TAB] == TASKS_TAB
    assert sync.tasks == ()


def _stored_registration_form(session: SessionStore, session_state: Dict[str, object]) -> RegistrationForm:
    form = RegistrationForm(session, scheduler=AsyncioScheduler(app._event_loop()), debounce_seconds=0.05)
    session_state[SS_REGISTRATION_FORM] = form
    return form


def test_registration_form_survives_reruns(session: SessionStore, session_state: Dict[str, object]) -> None:
    form = _stored_registration_form(session, session_state)

    assert app.registration_form(session) is form


def test_password_input_is_validated_after_quiet_period(
    session: SessionStore, session_state: Dict[str, object]
) -> None:
    form = _stored_registration_form(session, session_state)

    session_state[app.REGISTRATION_WIDGETS[PASSWORD]] = "short"
    app.on_registration_input(PASSWORD)
    assert form.has_pending_validation(PASSWORD)

    app.settle_password_validation(form)

    assert not form.has_pending_validation()
    assert form.errors[PASSWORD].startswith("Password must be at least 8 characters")

    session_state[app.REGISTRATION_WIDGETS[PASSWORD]] = "Secret1!"
    session_state[app.REGISTRATION_WIDGETS[CONFIRM_PASSWORD]] = "Secret2!"
    app.on_registration_input(PASSWORD)
    app.on_registration_input(CONFIRM_PASSWORD)
    app.settle_password_validation(form)

    assert PASSWORD not in form.errors
    assert form.errors[CONFIRM_PASSWORD] == PASSWORDS_DO_NOT_MATCH


def test_close_registration_disposes_form(session: SessionStore, session_state: Dict[str, object]) -> None:
    form = _stored_registration_form(session, session_state)
    session_state[app.REGISTRATION_WIDGETS[USERNAME]] = "ada"
    app.on_registration_input(USERNAME)
    session_state[app.REGISTRATION_WIDGETS[PASSWORD]] = "Secret1!"
    app.on_registration_input(PASSWORD)

    app.close_registration()

    assert form.disposed
    assert not form.has_pending_validation()
    assert SS_REGISTRATION_FORM not in session_state
    assert app.REGISTRATION_WIDGETS[USERNAME] not in session_state
    assert app.registration_form(session) is not form
