"""In-memory fake of the load balancers API."""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

_SUBSCRIPTION_ID = "subscriptionID"
_LB_ID_FORMAT = (
    "/subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.Network/loadBalancers/{name}"
)
_POOL_ID_FORMAT = _LB_ID_FORMAT + "/backendAddressPools/{pool}"


class LoadBalancerNotFoundError(Exception):
    """Raised when a requested load balancer does not exist."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


@dataclass
class LoadBalancer:
    id: str | None = None
    name: str | None = None
    location: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


def make_load_balancer_id(resource_group_name: str, load_balancer_name: str) -> str:
    """Build the resource ID of a load balancer."""
    return _LB_ID_FORMAT.format(sub=_SUBSCRIPTION_ID, rg=resource_group_name, name=load_balancer_name)


def make_backend_address_pool_id(
    resource_group_name: str, load_balancer_name: str, backend_address_pool_name: str
) -> str:
    """Build the resource ID of a load balancer's backend address pool."""
    return _POOL_ID_FORMAT.format(
        sub=_SUBSCRIPTION_ID,
        rg=resource_group_name,
        name=load_balancer_name,
        pool=backend_address_pool_name,
    )


class LoadBalancersAPI:
    """Holds load balancers in memory keyed by resource ID."""

    def __init__(self) -> None:
        self.load_balancers: dict[str, LoadBalancer] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Remove every stored load balancer; call between tests."""
        with self._lock:
            self.load_balancers.clear()

    def store(self, load_balancer: LoadBalancer) -> None:
        """Store a copy of the load balancer under its ID."""
        if load_balancer.id is None:
            raise ValueError("load balancer has no id")
        with self._lock:
            self.load_balancers[load_balancer.id] = copy.deepcopy(load_balancer)

    def get(
        self, resource_group_name: str, load_balancer_name: str, options: Any = None
    ) -> LoadBalancer:
        lb_id = make_load_balancer_id(resource_group_name, load_balancer_name)
        with self._lock:
            stored = self.load_balancers.get(lb_id)
            if stored is None:
                raise LoadBalancerNotFoundError()
            return copy.deepcopy(stored)

    def list_pages(
        self, resource_group_name: str, options: Any = None
    ) -> Iterator[list[LoadBalancer]]:
        """Yield a single page holding every load balancer, sorted by ID."""
        with self._lock:
            page = [copy.deepcopy(lb) for lb in self.load_balancers.values()]
        page.sort(key=lambda lb: lb.id or "")
        yield page