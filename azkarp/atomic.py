"""Thread-safe containers used by the in-memory API fakes.

Stored values are deep-copied on the way in and on the way out, so callers
never share mutable state with the container.
"""

from __future__ import annotations

import copy
import sys
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

AtomicErrorOption = Callable[["AtomicError"], None]


def _clone(value: T | None) -> T | None:
    return copy.deepcopy(value)


class AtomicPtr(Generic[T]):
    """A lock-guarded slot holding an optional value."""

    def __init__(self, value: T | None = None) -> None:
        self._lock = threading.Lock()
        self._value = value

    def set(self, value: T | None) -> None:
        with self._lock:
            self._value = value

    def is_nil(self) -> bool:
        with self._lock:
            return self._value is None

    def clone(self) -> T | None:
        """Return a deep copy of the stored value (or None)."""
        with self._lock:
            return _clone(self._value)

    def reset(self) -> None:
        with self._lock:
            self._value = None


class AtomicError:
    """An error that is handed out a limited number of times."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._err: BaseException | None = None
        self._calls = 0
        self._max_calls = 0

    def reset(self) -> None:
        with self._lock:
            self._err = None
            self._calls = 0
            self._max_calls = 0

    def is_nil(self) -> bool:
        with self._lock:
            return self._err is None

    def get(self) -> BaseException | None:
        """Return the error, counting the call, until the call budget is used up."""
        with self._lock:
            if self._calls >= self._max_calls:
                return None
            self._calls += 1
            return self._err

    def set(self, err: BaseException | None, *args: AtomicErrorOption) -> None:
        with self._lock:
            self._err = err
            for option in args:
                option(self)
            if self._max_calls == 0:
                self._max_calls = 1


def max_calls(count: int) -> AtomicErrorOption:
    """Option limiting how many times an error is returned; zero or less means unlimited."""
    if count <= 0:
        count = sys.maxsize

    def apply(error: AtomicError) -> None:
        error._max_calls = count

    return apply


class AtomicPtrStack(Generic[T]):
    """A lock-guarded LIFO stack of copied values."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: list[T | None] = []

    def reset(self) -> None:
        with self._lock:
            self._values = []

    def add(self, item: T | None) -> None:
        with self._lock:
            self._values.append(_clone(item))

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def pop(self) -> T | None:
        """Remove and return the most recently added value; IndexError when empty."""
        with self._lock:
            if not self._values:
                raise IndexError("pop from empty stack")
            return self._values.pop()


class AtomicPtrSlice(Generic[T]):
    """A lock-guarded list of copied values."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: list[T | None] = []

    def reset(self) -> None:
        with self._lock:
            self._values = []

    def append(self, *args: T | None) -> None:
        with self._lock:
            self._values.extend(_clone(item) for item in args)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def get(self, index: int) -> T | None:
        """Return a copy of the value at index, or None when out of range."""
        with self._lock:
            if index < 0 or index >= len(self._values):
                return None
            return _clone(self._values[index])

    def snapshot(self) -> list[T | None]:
        """Return copies of all stored values, in order."""
        with self._lock:
            return [_clone(item) for item in self._values]