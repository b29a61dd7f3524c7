"""Form-level validation for login, registration and task editing."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from task_tracker.constants import (
    PASSWORD_DEBOUNCE_SECONDS,
    PASSWORD_MIN_LENGTH,
    PASSWORD_SPECIAL_CHARACTERS,
    USERNAME_MIN_LENGTH,
)
from task_tracker.debounce import DebouncedValidator, Scheduler
from task_tracker.errors import ValidationError, conflict_field
from task_tracker.models import TaskDraft
from task_tracker.session import SessionStore

LOGGER = logging.getLogger(__name__)

USERNAME = "username"
EMAIL = "email"
PASSWORD = "password"
CONFIRM_PASSWORD = "confirm_password"
PASSWORD_FIELDS: tuple[str, str] = (PASSWORD, CONFIRM_PASSWORD)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SPECIAL_PATTERN = re.compile("[" + re.escape(PASSWORD_SPECIAL_CHARACTERS) + "]")

PASSWORDS_DO_NOT_MATCH = "Passwords do not match"
FILL_ALL_FIELDS = "Please fill in all fields"
REGISTRATION_FAILED = "Registration failed. Please try again."


def password_policy_violations(password: str) -> list[str]:
    """Return one message per unmet rule: length, uppercase, lowercase, digit, special."""

    violations: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        violations.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        violations.append("Include at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        violations.append("Include at least one lowercase letter")
    if not re.search(r"\d", password):
        violations.append("Include at least one number")
    if not _SPECIAL_PATTERN.search(password):
        violations.append(f"Include at least one special character ({PASSWORD_SPECIAL_CHARACTERS})")
    return violations


def build_task_draft(title: str, description: str, due_date: date | str) -> TaskDraft:
    """Validate task form input. Raises ValidationError before anything reaches the network."""

    field_errors: dict[str, str] = {}
    cleaned_title = (title or "").strip()
    cleaned_description = (description or "").strip()
    if not cleaned_title:
        field_errors["title"] = "Title is required"
    if not cleaned_description:
        field_errors["description"] = "Description is required"

    parsed_due: Optional[date] = None
    if isinstance(due_date, date):
        parsed_due = due_date
    else:
        raw_due = (due_date or "").strip()
        if not raw_due:
            field_errors["due_date"] = "Due date is required"
        else:
            try:
                parsed_due = date.fromisoformat(raw_due)
            except ValueError:
                field_errors["due_date"] = "Due date must use the YYYY-MM-DD format"

    if field_errors or parsed_due is None:
        raise ValidationError("Please fill all fields", field_errors=field_errors)
    return TaskDraft(title=cleaned_title, description=cleaned_description, due_date=parsed_due)


class LoginForm:
    def __init__(self, session: SessionStore) -> None:
        self.session = session
        self.username = ""
        self.password = ""
        self.error = ""
        self.is_submitting = False

    async def submit(self) -> bool:
        if self.is_submitting:
            return False
        if not self.username.strip() or not self.password.strip():
            self.error = FILL_ALL_FIELDS
            return False

        self.error = ""
        self.is_submitting = True
        try:
            return await self.session.sign_in(self.username.strip(), self.password.strip())
        finally:
            self.is_submitting = False


class RegistrationForm:
    """Registration form state.

    Password fields keep a raw buffer that follows every keystroke and a
    confirmed value that is only committed once the debounced policy check
    passes. Submission validates the raw buffers synchronously.
    """

    def __init__(
        self,
        session: SessionStore,
        *,
        scheduler: Scheduler,
        debounce_seconds: float = PASSWORD_DEBOUNCE_SECONDS,
    ) -> None:
        self.session = session
        self.values: dict[str, str] = {USERNAME: "", EMAIL: "", PASSWORD: "", CONFIRM_PASSWORD: ""}
        self.raw_passwords: dict[str, str] = {PASSWORD: "", CONFIRM_PASSWORD: ""}
        self.errors: dict[str, str] = {}
        self.notice = ""
        self.is_submitting = False
        self.validation_runs = 0
        self._disposed = False
        self._validator: DebouncedValidator[str] = DebouncedValidator(
            self._run_password_validation, scheduler=scheduler, delay=debounce_seconds
        )

    def set_field(self, field: str, value: str) -> None:
        if field in PASSWORD_FIELDS:
            self.set_password(field, value)
            return
        self.values[field] = value
        self.errors.pop(field, None)

    def set_password(self, field: str, value: str) -> None:
        if self._disposed:
            LOGGER.debug("Ignoring input for disposed registration form")
            return
        self.raw_passwords[field] = value
        self._validator.schedule(field, value)

    def has_pending_validation(self, field: Optional[str] = None) -> bool:
        if field is None:
            return self._validator.has_pending
        return self._validator.pending(field) is not None

    def validation_due_at(self) -> Optional[float]:
        """Scheduler time at which the last pending password check fires, if any."""

        due_times = [
            pending.due_at
            for pending in (self._validator.pending(field) for field in PASSWORD_FIELDS)
            if pending is not None
        ]
        return max(due_times) if due_times else None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _run_password_validation(self, field: str, value: str) -> None:
        self.validation_runs += 1
        violations = password_policy_violations(value)

        if field == PASSWORD:
            if violations:
                self.errors[PASSWORD] = ", ".join(violations)
            else:
                self.errors.pop(PASSWORD, None)

        if field == CONFIRM_PASSWORD:
            self._compare_passwords(value, self.raw_passwords[PASSWORD])
        elif self.raw_passwords[CONFIRM_PASSWORD]:
            self._compare_passwords(value, self.raw_passwords[CONFIRM_PASSWORD])

        if not violations:
            self.values[field] = value

    def _compare_passwords(self, left: str, right: str) -> None:
        if left != right:
            self.errors[CONFIRM_PASSWORD] = PASSWORDS_DO_NOT_MATCH
        else:
            self.errors.pop(CONFIRM_PASSWORD, None)

    def validate(self) -> bool:
        """Validate every field from the raw buffers, bypassing pending timers."""

        errors: dict[str, str] = {}
        username = self.values[USERNAME]
        email = self.values[EMAIL]
        password = self.raw_passwords[PASSWORD]
        confirm_password = self.raw_passwords[CONFIRM_PASSWORD]

        if not username.strip():
            errors[USERNAME] = "Username is required"
        elif len(username) < USERNAME_MIN_LENGTH:
            errors[USERNAME] = f"Username must be at least {USERNAME_MIN_LENGTH} characters"

        if not email.strip():
            errors[EMAIL] = "Email is required"
        elif not EMAIL_PATTERN.match(email):
            errors[EMAIL] = "Please enter a valid email address"

        violations = password_policy_violations(password)
        if violations:
            errors[PASSWORD] = ", ".join(violations)

        if not confirm_password:
            errors[CONFIRM_PASSWORD] = "Please confirm your password"
        elif password != confirm_password:
            errors[CONFIRM_PASSWORD] = PASSWORDS_DO_NOT_MATCH

        self.errors = errors
        return not errors

    async def submit(self) -> bool:
        if self.is_submitting:
            return False

        self.session.clear_error()
        self.notice = ""
        self._validator.cancel_all()
        if not self.validate():
            return False

        self.is_submitting = True
        try:
            registered = await self.session.sign_up(
                self.values[USERNAME].strip(),
                self.values[EMAIL].strip(),
                self.raw_passwords[PASSWORD],
            )
        finally:
            self.is_submitting = False

        if registered:
            return True

        message = self.session.state.error_message
        field = conflict_field(message)
        if field == USERNAME:
            self.errors[USERNAME] = "Username already exists"
        elif field == EMAIL:
            self.errors[EMAIL] = "Email already registered"
        else:
            self.notice = message or REGISTRATION_FAILED
        return False

    def dispose(self) -> None:
        """Tear the form down: cancel timers and reset every buffer."""

        self._validator.cancel_all()
        self._disposed = True
        self.session.clear_error()
        self.values = {USERNAME: "", EMAIL: "", PASSWORD: "", CONFIRM_PASSWORD: ""}
        self.raw_passwords = {PASSWORD: "", CONFIRM_PASSWORD: ""}
        self.errors = {}
        self.notice = ""


__all__ = [
    "CONFIRM_PASSWORD",
    "EMAIL",
    "EMAIL_PATTERN",
    "LoginForm",
    "PASSWORD",
    "PASSWORDS_DO_NOT_MATCH",
    "RegistrationForm",
    "USERNAME",
    "build_task_draft",
    "password_policy_violations",
]
