"""In-memory cluster objects and a small Kubernetes-style client."""

from __future__ import annotations

import copy
import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

NODE_POOL_LABEL_KEY = "karpenter.sh/nodepool"
NODECLAIM_LINKED_ANNOTATION_KEY = "karpenter.azure.com/nodeclaim-linked"
IN_PLACE_UPDATE_HASH_ANNOTATION_KEY = "karpenter.azure.com/inplace-update-hash"
PROVIDER_ID_PREFIX = "azure://"


class KubeNotFoundError(Exception):
    """Raised when a cluster object does not exist."""


class NodeClaimNotFoundError(Exception):
    """Raised by a cloud provider when the instance behind a node claim is gone."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NodeClaim:
    name: str = ""
    generate_name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    spec: dict[str, Any] = field(default_factory=dict)
    provider_id: str = ""
    creation_timestamp: datetime = field(default_factory=_now)
    deletion_timestamp: datetime | None = None


@dataclass
class Node:
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    provider_id: str = ""


@dataclass
class NodePool:
    name: str = ""
    template_spec: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Result:
    requeue_after: timedelta | None = None


class KubeClient:
    """Holds node claims, nodes and node pools in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodeclaims: dict[str, NodeClaim] = {}
        self._nodes: dict[str, Node] = {}
        self._nodepools: dict[str, NodePool] = {}
        self._sequence = itertools.count(1)

    def list_nodeclaims(self) -> list[NodeClaim]:
        with self._lock:
            return [copy.deepcopy(nc) for nc in self._nodeclaims.values()]

    def list_nodes(self, *args: str) -> list[Node]:
        """List nodes carrying every one of the given label keys."""
        with self._lock:
            return [
                copy.deepcopy(node)
                for node in self._nodes.values()
                if all(key in node.labels for key in args)
            ]

    def get_nodepool(self, name: str) -> NodePool:
        with self._lock:
            pool = self._nodepools.get(name)
            if pool is None:
                raise KubeNotFoundError(f"nodepool {name!r} not found")
            return copy.deepcopy(pool)

    def get_nodeclaim(self, name: str) -> NodeClaim:
        with self._lock:
            nc = self._nodeclaims.get(name)
            if nc is None:
                raise KubeNotFoundError(f"nodeclaim {name!r} not found")
            return copy.deepcopy(nc)

    def apply(self, *args: NodeClaim | Node | NodePool) -> None:
        """Create or replace each object by name."""
        with self._lock:
            for obj in args:
                if not obj.name:
                    raise ValueError("object has no name")
                stored = copy.deepcopy(obj)
                if isinstance(obj, NodeClaim):
                    self._nodeclaims[obj.name] = stored
                elif isinstance(obj, Node):
                    self._nodes[obj.name] = stored
                elif isinstance(obj, NodePool):
                    self._nodepools[obj.name] = stored
                else:
                    raise TypeError(f"unsupported object {type(obj).__name__}")

    def create_nodeclaim(self, nodeclaim: NodeClaim) -> NodeClaim:
        """Create a node claim, naming it from generate_name when it has no name."""
        with self._lock:
            if not nodeclaim.name:
                if not nodeclaim.generate_name:
                    raise ValueError("nodeclaim has neither name nor generate_name")
                nodeclaim.name = f"{nodeclaim.generate_name}{next(self._sequence):05x}"
            if nodeclaim.name in self._nodeclaims:
                raise ValueError(f"nodeclaim {nodeclaim.name!r} already exists")
            self._nodeclaims[nodeclaim.name] = copy.deepcopy(nodeclaim)
            return copy.deepcopy(nodeclaim)

    def delete_node(self, node: Node) -> None:
        with self._lock:
            if self._nodes.pop(node.name, None) is None:
                raise KubeNotFoundError(f"node {node.name!r} not found")

    def patch_nodeclaim(self, nodeclaim: NodeClaim) -> None:
        with self._lock:
            if nodeclaim.name not in self._nodeclaims:
                raise KubeNotFoundError(f"nodeclaim {nodeclaim.name!r} not found")
            self._nodeclaims[nodeclaim.name] = copy.deepcopy(nodeclaim)