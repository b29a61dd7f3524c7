from __future__ import annotations

from typing import Callable, Generic, TypeVar

StateT = TypeVar("StateT")
Listener = Callable[[StateT], None]


class Observable(Generic[StateT]):
    """Minimal subscription mechanism shared by the state containers."""

    def __init__(self) -> None:
        self._listeners: list[Listener[StateT]] = []

    def subscribe(self, listener: Listener[StateT]) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: StateT) -> None:
        for listener in list(self._listeners):
            listener(state)


__all__ = ["Listener", "Observable"]
