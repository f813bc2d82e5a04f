"""Configurable mocked functions and long-running operations for the fakes."""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

from azkarp.atomic import AtomicError, AtomicPtr, AtomicPtrStack

I = TypeVar("I")
O = TypeVar("O")


class Poller(Generic[O]):
    """A long-running operation that has already finished."""

    def __init__(self, result: O | None = None, error: BaseException | None = None) -> None:
        self._result = result
        self._error = error

    def done(self) -> bool:
        return True

    def poll(self) -> None:
        if self._error is not None:
            raise self._error

    def result(self) -> O | None:
        """Return the operation's result, or raise its error."""
        if self._error is not None:
            raise self._error
        return self._result


class _CallCounter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._successful = 0
        self._failed = 0

    def succeeded(self) -> None:
        with self._lock:
            self._successful += 1

    def failed(self) -> None:
        with self._lock:
            self._failed += 1

    def reset(self) -> None:
        with self._lock:
            self._successful = 0
            self._failed = 0

    @property
    def successful(self) -> int:
        with self._lock:
            return self._successful

    @property
    def failed_count(self) -> int:
        with self._lock:
            return self._failed


class MockedFunction(Generic[I, O]):
    """A function whose output and errors can be overridden by tests."""

    def __init__(self) -> None:
        self.output: AtomicPtr[O] = AtomicPtr()
        self.called_with_input: AtomicPtrStack[I] = AtomicPtrStack()
        self.error = AtomicError()
        self._counter = _CallCounter()

    def reset(self) -> None:
        self.output.reset()
        self.called_with_input.reset()
        self.error.reset()
        self._counter.reset()

    def invoke(self, input: I, default: Callable[[I], O]) -> O:
        """Raise the configured error, return the configured output, or run default."""
        err = self.error.get()
        if err is not None:
            self._counter.failed()
            raise err
        self.called_with_input.add(input)

        if not self.output.is_nil():
            self._counter.succeeded()
            return self.output.clone()
        try:
            out = default(input)
        except Exception:
            self._counter.failed()
            raise
        self._counter.succeeded()
        return out

    def calls(self) -> int:
        return self.successful_calls() + self.failed_calls()

    def successful_calls(self) -> int:
        return self._counter.successful

    def failed_calls(self) -> int:
        return self._counter.failed_count


class MockedLRO(MockedFunction[I, O]):
    """A mocked long-running operation returning a Poller.

    ``begin_error`` fails the call itself; ``error`` fails the returned poller.
    """

    def __init__(self) -> None:
        super().__init__()
        self.begin_error = AtomicError()

    def reset(self) -> None:
        super().reset()
        self.begin_error.reset()

    def invoke(self, input: I, default: Callable[[I], O]) -> Poller[O]:
        err = self.begin_error.get()
        if err is not None:
            self._counter.failed()
            raise err
        err = self.error.get()
        if err is not None:
            self._counter.failed()
            return Poller(None, err)

        self.called_with_input.add(input)

        if not self.output.is_nil():
            self._counter.succeeded()
            return Poller(self.output.clone())
        try:
            out = default(input)
        except Exception as exc:
            self._counter.failed()
            return Poller(None, exc)
        self._counter.succeeded()
        return Poller(out)