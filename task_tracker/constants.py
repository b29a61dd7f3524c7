"""Central constants for persisted keys, Streamlit session state keys and timings."""

# Persisted session layout. Both keys are always written and removed together.
TOKEN_KEY: str = "token"
USER_KEY: str = "user"
SESSION_KEYS: tuple[str, str] = (TOKEN_KEY, USER_KEY)

# Streamlit session state keys used by the app shell.
SS_SESSION_STORE: str = "session_store"
SS_TASK_SYNC: str = "task_sync"
SS_PROFILE: str = "profile"
SS_TAB_ROUTER: str = "tab_router"
SS_ACTIVE_TAB: str = "active_tab"
SS_AUTH_SCREEN: str = "auth_screen"
SS_EVENT_LOOP: str = "event_loop"
SS_PENDING_DELETE: str = "pending_delete"
SS_EDIT_TASK_ID: str = "edit_task_id"
SS_NOTICE: str = "notice"
SS_REGISTRATION_FORM: str = "registration_form"

# Navigation tabs.
TASKS_TAB: str = "Tasks"
ADD_TASK_TAB: str = "Add Task"
PROFILE_TAB: str = "Profile"
TAB_NAMES: tuple[str, ...] = (TASKS_TAB, ADD_TASK_TAB, PROFILE_TAB)

DOUBLE_TAP_WINDOW_MS: float = 300.0
PASSWORD_DEBOUNCE_SECONDS: float = 0.5

PASSWORD_MIN_LENGTH: int = 8
PASSWORD_SPECIAL_CHARACTERS: str = "@$!%*#?&"
USERNAME_MIN_LENGTH: int = 3
