from task_tracker.api import TaskApiClient
from task_tracker.models import SessionState, Task, TaskStatus, UserRecord, UserStats
from task_tracker.navigation import TabGestureRouter, TapEffect, classify_tap
from task_tracker.profile import ProfileController
from task_tracker.session import SessionStore
from task_tracker.storage import FilePersistenceAdapter, MemoryPersistenceAdapter
from task_tracker.tasks import DeleteConfirmation, TaskSyncController

__all__ = [
    "DeleteConfirmation",
    "FilePersistenceAdapter",
    "MemoryPersistenceAdapter",
    "ProfileController",
    "SessionState",
    "SessionStore",
    "TabGestureRouter",
    "TapEffect",
    "Task",
    "TaskApiClient",
    "TaskStatus",
    "TaskSyncController",
    "UserRecord",
    "UserStats",
    "classify_tap",
]
