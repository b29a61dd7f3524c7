from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import streamlit as st
from streamlit.errors import StreamlitSecretNotFoundError

DEFAULT_API_URL = "http://192.168.1.10:5000/api"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_SESSION_FILE = Path(".data/task_tracker_session.json")
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class AppConfig:
    api_base_url: str
    timeout_seconds: float
    session_file: Path
    log_level: str


def _get_secret(name: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    if env is not None:
        value = env.get(name)
        return str(value) if value else None
    try:
        value = st.secrets.get(name)
        if value:
            return str(value)
    except StreamlitSecretNotFoundError:
        value = None
    return os.getenv(name)


def _float_setting(raw: Optional[str], default: float) -> float:
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Resolve settings from Streamlit secrets, then environment variables.

    Passing ``env`` bypasses both and reads only from the given mapping.
    """

    api_base_url = (_get_secret("TASK_TRACKER_API_URL", env) or DEFAULT_API_URL).rstrip("/")
    timeout_seconds = _float_setting(_get_secret("TASK_TRACKER_TIMEOUT_SECONDS", env), DEFAULT_TIMEOUT_SECONDS)
    session_file_raw = _get_secret("TASK_TRACKER_SESSION_FILE", env)
    session_file = Path(session_file_raw).expanduser() if session_file_raw else DEFAULT_SESSION_FILE
    log_level = (_get_secret("TASK_TRACKER_LOG_LEVEL", env) or DEFAULT_LOG_LEVEL).upper()
    return AppConfig(
        api_base_url=api_base_url,
        timeout_seconds=timeout_seconds,
        session_file=session_file,
        log_level=log_level,
    )


__all__ = ["AppConfig", "DEFAULT_API_URL", "DEFAULT_SESSION_FILE", "DEFAULT_TIMEOUT_SECONDS", "load_config"]
