import pytest

from azkarp.atomic import (
    AtomicError,
    AtomicPtr,
    AtomicPtrSlice,
    AtomicPtrStack,
    max_calls,
)


def test_atomic_ptr_starts_nil_and_clone_is_none():
    ptr = AtomicPtr()
    assert ptr.is_nil() is True
    assert ptr.clone() is None


def test_atomic_ptr_clone_is_deep_copy():
    ptr = AtomicPtr()
    original = {"items": [1, 2]}
    ptr.set(original)
    assert ptr.is_nil() is False
    cloned = ptr.clone()
    assert cloned == original
    assert cloned is not original
    cloned["items"].append(3)
    assert ptr.clone() == {"items": [1, 2]}


def test_atomic_ptr_reset():
    ptr = AtomicPtr()
    ptr.set("value")
    ptr.reset()
    assert ptr.is_nil() is True


def test_atomic_error_default_returns_once():
    error = AtomicError()
    assert error.is_nil() is True
    assert error.get() is None
    boom = RuntimeError("boom")
    error.set(boom)
    assert error.is_nil() is False
    assert error.get() is boom
    assert error.get() is None


def test_atomic_error_max_calls():
    error = AtomicError()
    boom = RuntimeError("boom")
    error.set(boom, max_calls(3))
    results = [error.get() for _ in range(5)]
    assert results[:3] == [boom, boom, boom]
    assert results[3:] == [None, None]


def test_atomic_error_max_calls_zero_is_unlimited():
    error = AtomicError()
    boom = ValueError("x")
    error.set(boom, max_calls(0))
    assert all(error.get() is boom for _ in range(100))


def test_atomic_error_reset_clears_budget():
    error = AtomicError()
    boom = RuntimeError("boom")
    error.set(boom, max_calls(-1))
    error.reset()
    assert error.is_nil() is True
    assert error.get() is None
    error.set(boom)
    assert error.get() is boom
    assert error.get() is None


def test_stack_is_lifo_and_copies():
    stack = AtomicPtrStack()
    first = {"n": 1}
    stack.add(first)
    stack.add({"n": 2})
    first["n"] = 99
    assert len(stack) == 2
    assert stack.pop() == {"n": 2}
    assert stack.pop() == {"n": 1}
    assert len(stack) == 0


def test_stack_pop_empty_raises():
    stack = AtomicPtrStack()
    with pytest.raises(IndexError):
        stack.pop()


def test_stack_reset():
    stack = AtomicPtrStack()
    stack.add("a")
    stack.reset()
    assert len(stack) == 0


def test_slice_append_and_get():
    values = AtomicPtrSlice()
    values.append({"a": 1}, {"b": 2})
    assert len(values) == 2
    assert values.get(0) == {"a": 1}
    assert values.get(1) == {"b": 2}
    assert values.get(2) is None
    assert values.get(-1) is None


def test_slice_get_returns_copy():
    values = AtomicPtrSlice()
    values.append({"a": [1]})
    got = values.get(0)
    got["a"].append(2)
    assert values.get(0) == {"a": [1]}


def test_slice_snapshot_and_reset():
    values = AtomicPtrSlice()
    values.append("x", "y")
    assert values.snapshot() == ["x", "y"]
    values.reset()
    assert values.snapshot() == []
    assert len(values) == 0