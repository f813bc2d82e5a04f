"""Labelled counters and the image selection error metric."""

from __future__ import annotations

import threading
from collections.abc import Sequence

NAMESPACE = "karpenter"
IMAGE_FAMILY_SUBSYSTEM = "image"


class Counter:
    """A monotonically increasing value."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0

    def inc(self, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counter cannot decrease")
        with self._lock:
            self._value += amount

    def value(self) -> float:
        with self._lock:
            return self._value


class CounterVec:
    """A family of counters keyed by label values."""

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Sequence[str],
        namespace: str = "",
        subsystem: str = "",
    ) -> None:
        self.fq_name = "_".join(part for part in (namespace, subsystem, name) if part)
        self.help = help
        self.label_names = tuple(label_names)
        self._lock = threading.Lock()
        self._children: dict[tuple[str, ...], Counter] = {}

    def labels(self, *args: str) -> Counter:
        """Return the counter for these label values, creating it on first use."""
        if len(args) != len(self.label_names):
            raise ValueError(
                f"expected {len(self.label_names)} label values, got {len(args)}"
            )
        key = tuple(args)
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = self._children[key] = Counter()
            return child

    def reset(self) -> None:
        with self._lock:
            self._children.clear()

    def collect_count(self) -> int:
        """Return the number of label combinations in use."""
        with self._lock:
            return len(self._children)


REGISTRY: dict[str, CounterVec] = {}


def _register(collector: CounterVec) -> CounterVec:
    if collector.fq_name in REGISTRY:
        raise ValueError(f"duplicate metric {collector.fq_name}")
    REGISTRY[collector.fq_name] = collector
    return collector


IMAGE_SELECTION_ERROR_COUNT = _register(
    CounterVec(
        name="selection_error_count",
        help="The number of errors encountered while selecting an image.",
        label_names=("family",),
        namespace=NAMESPACE,
        subsystem=IMAGE_FAMILY_SUBSYSTEM,
    )
)