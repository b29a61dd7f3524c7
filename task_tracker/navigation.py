"""Tab gesture routing: a quick second tap on the task tab refreshes instead of navigating."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from task_tracker.constants import DOUBLE_TAP_WINDOW_MS, TASKS_TAB

LOGGER = logging.getLogger(__name__)

RefreshCallback = Callable[[], object]


class TapEffect(str, Enum):
    NAVIGATE = "navigate"
    REFRESH = "refresh"


@dataclass(frozen=True)
class DoubleTapState:
    """Most recent tap. ``time`` is in milliseconds."""

    time: float = 0.0
    tab_name: str = ""


@dataclass(frozen=True)
class TapDecision:
    state: DoubleTapState
    effect: TapEffect


def classify_tap(
    state: DoubleTapState,
    tab_name: str,
    now: float,
    *,
    refreshable_tab: str = TASKS_TAB,
    window_ms: float = DOUBLE_TAP_WINDOW_MS,
) -> TapDecision:
    """Classify a tap. The returned state always records this tap."""

    delta = now - state.time
    previous_tab = state.tab_name
    next_state = DoubleTapState(time=now, tab_name=tab_name)

    if tab_name == refreshable_tab and previous_tab == tab_name and delta < window_ms:
        return TapDecision(state=next_state, effect=TapEffect.REFRESH)
    return TapDecision(state=next_state, effect=TapEffect.NAVIGATE)


class Navigator(Protocol):
    def is_focused(self, tab_name: str) -> bool: ...

    def navigate(self, tab_name: str) -> None: ...


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class TabGestureRouter:
    """Apply ``classify_tap`` decisions to a navigator and per-tab refresh callbacks."""

    def __init__(
        self,
        navigator: Navigator,
        *,
        clock: Optional[Callable[[], float]] = None,
        refreshable_tab: str = TASKS_TAB,
        window_ms: float = DOUBLE_TAP_WINDOW_MS,
    ) -> None:
        self._navigator = navigator
        self._clock = clock or _monotonic_ms
        self.refreshable_tab = refreshable_tab
        self.window_ms = window_ms
        self.state = DoubleTapState()
        self._refresh_callbacks: dict[str, RefreshCallback] = {}
        self._pending_refresh: Optional[asyncio.Future[object]] = None

    def register_refresh(self, tab_name: str, callback: RefreshCallback) -> Callable[[], None]:
        """Register the active screen's refresh callback; returns an unregister callable."""

        self._refresh_callbacks[tab_name] = callback

        def unregister() -> None:
            if self._refresh_callbacks.get(tab_name) is callback:
                del self._refresh_callbacks[tab_name]

        return unregister

    def on_tab_press(self, tab_name: str, *, now: Optional[float] = None) -> TapEffect:
        timestamp = self._clock() if now is None else now
        decision = classify_tap(
            self.state,
            tab_name,
            timestamp,
            refreshable_tab=self.refreshable_tab,
            window_ms=self.window_ms,
        )
        self.state = decision.state

        if decision.effect is TapEffect.REFRESH:
            self._trigger_refresh(tab_name)
        elif not self._navigator.is_focused(tab_name):
            self._navigator.navigate(tab_name)
        return decision.effect

    def _trigger_refresh(self, tab_name: str) -> None:
        callback = self._refresh_callbacks.get(tab_name)
        if callback is None:
            LOGGER.debug("Double tap on %s without a registered refresh callback", tab_name)
            return

        result = callback()
        if inspect.isawaitable(result):
            # Async callbacks need a running loop; without one this raises RuntimeError.
            loop = asyncio.get_running_loop()
            future = asyncio.ensure_future(result, loop=loop)
            future.add_done_callback(_log_refresh_failure)
            self._pending_refresh = future

    @property
    def pending_refresh(self) -> Optional[asyncio.Future[object]]:
        return self._pending_refresh

    def reset(self) -> None:
        """Forget the last tap so the next one starts a fresh sequence."""

        self.state = DoubleTapState()


def _log_refresh_failure(future: asyncio.Future[object]) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        LOGGER.warning("Tab refresh failed: %s", exc)


__all__ = [
    "DoubleTapState",
    "Navigator",
    "TabGestureRouter",
    "TapDecision",
    "TapEffect",
    "classify_tap",
]
