"""
Observable state holders shared between the pipeline and its callers.

A Store holds one value and notifies subscribers whenever it is set. Stores
are plain objects passed in by the caller, so every test builds its own.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Subscriber = Callable[[T], None]


class Store(Generic[T]):
    """
    A single observable value.

    Usage:
        loading = Store(None)
        unsubscribe = loading.subscribe(print)  # prints None immediately
        loading.set("Fetching...")               # prints "Fetching..."
        unsubscribe()
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: list[Subscriber] = []

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Replace the value and notify every subscriber."""
        self._value = value
        for callback in list(self._subscribers):
            callback(value)

    def update(self, fn: Callable[[T], T]) -> None:
        """Set the value to fn(current value)."""
        self.set(fn(self._value))

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for value changes.

        The callback is called once immediately with the current value.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)
        callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def __repr__(self) -> str:
        return f"Store({self._value!r})"


@dataclass
class AppState:
    """
    Stores the rest of the application reads from.

    Attributes:
        current_dataset: The last analysis engine model published by a load.
        loading: Progress message while a load runs, None otherwise.
        error: Human-readable message of the last failed load, None otherwise.
    """

    current_dataset: Store[Optional[Any]] = field(default_factory=lambda: Store(None))
    loading: Store[Optional[str]] = field(default_factory=lambda: Store(None))
    error: Store[Optional[str]] = field(default_factory=lambda: Store(None))
