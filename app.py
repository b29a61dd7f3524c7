from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

import streamlit as st

from task_tracker.api import TaskApiClient
from task_tracker.config import AppConfig, load_config
from task_tracker.constants import (
    ADD_TASK_TAB,
    PROFILE_TAB,
    SS_ACTIVE_TAB,
    SS_AUTH_SCREEN,
    SS_EDIT_TASK_ID,
    SS_EVENT_LOOP,
    SS_NOTICE,
    SS_PENDING_DELETE,
    SS_PROFILE,
    SS_REGISTRATION_FORM,
    SS_SESSION_STORE,
    SS_TAB_ROUTER,
    SS_TASK_SYNC,
    TAB_NAMES,
    TASKS_TAB,
)
from task_tracker.debounce import AsyncioScheduler
from task_tracker.errors import ValidationError
from task_tracker.forms import CONFIRM_PASSWORD, EMAIL, PASSWORD, USERNAME, LoginForm, RegistrationForm
from task_tracker.models import SessionState, Task, TaskStatus, can_modify
from task_tracker.navigation import TabGestureRouter
from task_tracker.profile import ProfileController
from task_tracker.session import SessionStore
from task_tracker.storage import FilePersistenceAdapter
from task_tracker.tasks import DeleteConfirmation, TaskSyncController

LOGGER = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

LOGIN_SCREEN = "login"
REGISTER_SCREEN = "register"

REGISTRATION_WIDGETS: dict[str, str] = {
    USERNAME: "register_username",
    EMAIL: "register_email",
    PASSWORD: "register_password",
    CONFIRM_PASSWORD: "register_confirm_password",
}
_SETTLE_MARGIN_SECONDS = 0.01


def _event_loop() -> asyncio.AbstractEventLoop:
    loop = st.session_state.get(SS_EVENT_LOOP)
    if not isinstance(loop, asyncio.AbstractEventLoop) or loop.is_closed():
        loop = asyncio.new_event_loop()
        st.session_state[SS_EVENT_LOOP] = loop
    return loop


def run_async(awaitable: Awaitable[ResultT]) -> ResultT:
    """Drive a coroutine to completion on the per-session event loop."""

    return _event_loop().run_until_complete(awaitable)


class SessionStateNavigator:
    """Navigator backed by the active tab stored in Streamlit session state."""

    def is_focused(self, tab_name: str) -> bool:
        return st.session_state.get(SS_ACTIVE_TAB, TASKS_TAB) == tab_name

    def navigate(self, tab_name: str) -> None:
        st.session_state[SS_ACTIVE_TAB] = tab_name


def _configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def reset_signed_out_state(state: SessionState) -> None:
    """Drop the previous user's tasks and navigation state once the session ends."""

    if state.is_logged_in:
        return

    sync = st.session_state.get(SS_TASK_SYNC)
    if isinstance(sync, TaskSyncController) and (sync.has_loaded or sync.tasks):
        sync.reset()
    router = st.session_state.get(SS_TAB_ROUTER)
    if isinstance(router, TabGestureRouter):
        router.reset()
    confirmation = st.session_state.get(SS_PENDING_DELETE)
    if isinstance(confirmation, DeleteConfirmation):
        confirmation.cancel()
    st.session_state.pop(SS_EDIT_TASK_ID, None)
    st.session_state[SS_ACTIVE_TAB] = TASKS_TAB


def bootstrap(config: AppConfig) -> None:
    """Create the per-session collaborators once and restore any saved session."""

    if SS_SESSION_STORE in st.session_state:
        return

    storage = FilePersistenceAdapter(config.session_file)
    api = TaskApiClient(config.api_base_url, timeout=config.timeout_seconds)
    session = SessionStore(api, storage)
    api.token_provider = lambda: session.token
    session.subscribe(reset_signed_out_state)

    sync = TaskSyncController(api)
    router = TabGestureRouter(SessionStateNavigator())
    router.register_refresh(TASKS_TAB, lambda: run_async(sync.list_tasks()))

    st.session_state[SS_SESSION_STORE] = session
    st.session_state[SS_TASK_SYNC] = sync
    st.session_state[SS_PROFILE] = ProfileController(api, session)
    st.session_state[SS_TAB_ROUTER] = router
    st.session_state[SS_PENDING_DELETE] = DeleteConfirmation()
    st.session_state.setdefault(SS_ACTIVE_TAB, TASKS_TAB)
    st.session_state.setdefault(SS_AUTH_SCREEN, LOGIN_SCREEN)

    run_async(session.try_restore_session())


def _show_session_error(session: SessionStore) -> None:
    if session.state.error_message:
        st.error(session.state.error_message)


def render_login(session: SessionStore) -> None:
    st.header("Welcome back")
    _show_session_error(session)
    form = LoginForm(session)
    with st.form("login_form"):
        form.username = st.text_input("Username", key="login_username")
        form.password = st.text_input("Password", type="password", key="login_password")
        submitted = st.form_submit_button("Log in")

    if submitted:
        signed_in = run_async(form.submit())
        if form.error:
            st.error(form.error)
        elif signed_in:
            st.rerun()
        else:
            _show_session_error(session)

    if st.button("Create an account"):
        session.clear_error()
        st.session_state[SS_AUTH_SCREEN] = REGISTER_SCREEN
        st.rerun()


def registration_form(session: SessionStore) -> RegistrationForm:
    """Return the registration form that lives for as long as the screen is open."""

    form = st.session_state.get(SS_REGISTRATION_FORM)
    if not isinstance(form, RegistrationForm) or form.disposed:
        form = RegistrationForm(session, scheduler=AsyncioScheduler(_event_loop()))
        st.session_state[SS_REGISTRATION_FORM] = form
    return form


def close_registration() -> None:
    form = st.session_state.pop(SS_REGISTRATION_FORM, None)
    if isinstance(form, RegistrationForm):
        form.dispose()
    for widget_key in REGISTRATION_WIDGETS.values():
        st.session_state.pop(widget_key, None)


def on_registration_input(field: str) -> None:
    """Widget callback: forward the edited value to the stored form."""

    form = st.session_state.get(SS_REGISTRATION_FORM)
    if isinstance(form, RegistrationForm):
        form.set_field(field, str(st.session_state.get(REGISTRATION_WIDGETS[field], "")))


def settle_password_validation(form: RegistrationForm) -> None:
    """Run the session loop until every pending password check has fired."""

    due_at = form.validation_due_at()
    if due_at is None:
        return
    delay = max(0.0, due_at - _event_loop().time()) + _SETTLE_MARGIN_SECONDS
    run_async(asyncio.sleep(delay))


def _registration_input(form: RegistrationForm, field: str, label: str, *, secret: bool = False) -> None:
    st.text_input(
        label,
        key=REGISTRATION_WIDGETS[field],
        type="password" if secret else "default",
        on_change=on_registration_input,
        args=(field,),
    )
    if field in form.errors:
        st.caption(f":red[{form.errors[field]}]")


def render_register(session: SessionStore) -> None:
    st.header("Create account")
    form = registration_form(session)
    settle_password_validation(form)

    _registration_input(form, USERNAME, "Username")
    _registration_input(form, EMAIL, "Email")
    _registration_input(form, PASSWORD, "Password", secret=True)
    _registration_input(form, CONFIRM_PASSWORD, "Confirm password", secret=True)
    if form.notice:
        st.error(form.notice)

    if st.button("Sign up", type="primary", disabled=form.is_submitting):
        if run_async(form.submit()):
            close_registration()
            st.session_state[SS_NOTICE] = "Registration successful!"
        st.rerun()

    if st.button("Back to login"):
        close_registration()
        st.session_state[SS_AUTH_SCREEN] = LOGIN_SCREEN
        st.rerun()


def render_navigation(router: TabGestureRouter) -> str:
    st.sidebar.title("Task Tracker")
    for tab_name in TAB_NAMES:
        if st.sidebar.button(tab_name, key=f"tab_{tab_name}", use_container_width=True):
            router.on_tab_press(tab_name)
    return str(st.session_state.get(SS_ACTIVE_TAB, TASKS_TAB))


def _render_edit_form(sync: TaskSyncController, task: Task) -> None:
    with st.form(f"edit_form_{task.id}"):
        title = st.text_input("Task Title", value=task.title)
        description = st.text_area("Description", value=task.description)
        due_date = st.text_input("Due Date (YYYY-MM-DD)", value=task.due_date.isoformat())
        save, cancel = st.columns(2)
        saved = save.form_submit_button("Save")
        cancelled = cancel.form_submit_button("Cancel")

    if cancelled:
        st.session_state.pop(SS_EDIT_TASK_ID, None)
        st.rerun()
    if saved:
        try:
            updated = run_async(sync.update_task(task.id, title, description, due_date))
        except ValidationError as exc:
            for message in exc.field_errors.values():
                st.error(message)
            return
        if updated:
            st.session_state.pop(SS_EDIT_TASK_ID, None)
            st.session_state[SS_NOTICE] = "Task updated successfully"
            st.rerun()


def _render_task_card(sync: TaskSyncController, session: SessionStore, task: Task) -> None:
    confirmation: DeleteConfirmation = st.session_state[SS_PENDING_DELETE]
    with st.container(border=True):
        st.subheader(task.title)
        st.caption(f"{task.status.label.upper()} · Due: {task.due_date.isoformat()}")
        st.write(task.description)

        columns = st.columns(len(TaskStatus))
        for column, status in zip(columns, TaskStatus):
            if column.button(status.label, key=f"status_{task.id}_{status.value}", disabled=task.status is status):
                run_async(sync.set_status(task.id, status))
                st.rerun()

        if not can_modify(task, session.state.user):
            return

        edit_column, delete_column = st.columns(2)
        if edit_column.button("Edit", key=f"edit_{task.id}"):
            st.session_state[SS_EDIT_TASK_ID] = task.id
        if delete_column.button("Delete", key=f"delete_{task.id}"):
            confirmation.request(task.id)

        if confirmation.task_id == task.id:
            st.warning("Are you sure you want to delete this task?")
            confirm_column, cancel_column = st.columns(2)
            if confirm_column.button("Delete", key=f"confirm_delete_{task.id}", type="primary"):
                if run_async(sync.delete_task(confirmation.confirm())):
                    st.session_state[SS_NOTICE] = "Task deleted successfully"
                st.rerun()
            if cancel_column.button("Cancel", key=f"cancel_delete_{task.id}"):
                confirmation.cancel()
                st.rerun()

        if st.session_state.get(SS_EDIT_TASK_ID) == task.id:
            _render_edit_form(sync, task)


def render_task_list(sync: TaskSyncController, session: SessionStore) -> None:
    st.header("My Tasks")
    if not sync.has_loaded:
        with st.spinner("Loading tasks..."):
            run_async(sync.list_tasks())

    if st.button("Refresh"):
        run_async(sync.list_tasks())

    if sync.error_message:
        st.warning(sync.error_message)
        if st.button("Dismiss"):
            sync.clear_error()
            st.rerun()

    if not sync.tasks:
        st.info("No tasks yet")
    for task in sync.tasks:
        _render_task_card(sync, session, task)


def render_add_task(sync: TaskSyncController) -> None:
    st.header("Add New Task")
    with st.form("add_task_form", clear_on_submit=False):
        title = st.text_input("Task Title")
        description = st.text_area("Description")
        due_date = st.text_input("Due Date (YYYY-MM-DD)")
        submitted = st.form_submit_button("Add Task")

    if not submitted:
        return
    try:
        created = run_async(sync.create_task(title, description, due_date))
    except ValidationError as exc:
        st.error(exc.message)
        for message in exc.field_errors.values():
            st.caption(message)
        return
    if created:
        st.session_state[SS_NOTICE] = "Task added successfully!"
        SessionStateNavigator().navigate(TASKS_TAB)
        st.rerun()
    elif sync.error_message:
        st.error(sync.error_message)


def render_profile(profile: ProfileController) -> None:
    st.header("Profile")
    if profile.user is not None and profile.user.profile_image:
        st.image(profile.user.profile_image, width=120)
    st.subheader(profile.display_name)
    st.caption(profile.display_email)
    st.write(profile.display_bio)

    if st.button("Refresh statistics") or not profile.has_loaded_stats:
        run_async(profile.load_stats())
    if profile.error_message:
        st.warning(profile.error_message)

    posts, followers, following = st.columns(3)
    posts.metric("Posts", profile.stats.total_posts)
    followers.metric("Followers", profile.stats.followers)
    following.metric("Following", profile.stats.following)

    if st.button("Logout", type="primary"):
        run_async(profile.sign_out())
        st.session_state[SS_AUTH_SCREEN] = LOGIN_SCREEN
        st.rerun()


def main() -> None:
    st.set_page_config(page_title="Task Tracker", page_icon="✅")
    config = load_config()
    _configure_logging(config)
    bootstrap(config)

    session: SessionStore = st.session_state[SS_SESSION_STORE]
    if not session.state.is_logged_in:
        if st.session_state.get(SS_AUTH_SCREEN) == REGISTER_SCREEN:
            render_register(session)
        else:
            render_login(session)
        return

    notice = st.session_state.pop(SS_NOTICE, None)
    if notice:
        st.success(notice)

    sync: TaskSyncController = st.session_state[SS_TASK_SYNC]
    active_tab = render_navigation(st.session_state[SS_TAB_ROUTER])
    if active_tab == ADD_TASK_TAB:
        render_add_task(sync)
    elif active_tab == PROFILE_TAB:
        render_profile(st.session_state[SS_PROFILE])
    else:
        render_task_list(sync, session)


if __name__ == "__main__":
    main()
