"""In-memory fake of the network interfaces API."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Any

from azkarp.mocks import MockedLRO, Poller

_SUBSCRIPTION_ID = "subscriptionID"
_NIC_ID_FORMAT = (
    "/subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.Network/networkInterfaces/{name}"
)


class NotFoundError(Exception):
    """Raised when a requested network interface does not exist."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


@dataclass
class NetworkInterface:
    id: str | None = None
    name: str | None = None
    location: str | None = None
    tags: dict[str, str | None] | None = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class NetworkInterfaceCreateOrUpdateInput:
    resource_group_name: str
    interface_name: str
    interface: NetworkInterface
    options: Any = None


def mk_network_interface_id(resource_group_name: str, interface_name: str) -> str:
    """Build the resource ID of a network interface."""
    return _NIC_ID_FORMAT.format(sub=_SUBSCRIPTION_ID, rg=resource_group_name, name=interface_name)


class NetworkInterfacesAPI:
    """Stores network interfaces in memory keyed by resource ID."""

    def __init__(self) -> None:
        self.create_or_update_behavior: MockedLRO[
            NetworkInterfaceCreateOrUpdateInput, NetworkInterface
        ] = MockedLRO()
        self.network_interfaces: dict[str, NetworkInterface] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear behaviour and stored interfaces; call between tests."""
        self.create_or_update_behavior.reset()
        with self._lock:
            self.network_interfaces.clear()

    def begin_create_or_update(
        self,
        resource_group_name: str,
        interface_name: str,
        interface: NetworkInterface,
        options: Any = None,
    ) -> Poller[NetworkInterface]:
        request = NetworkInterfaceCreateOrUpdateInput(
            resource_group_name, interface_name, interface, options
        )

        def create(req: NetworkInterfaceCreateOrUpdateInput) -> NetworkInterface:
            nic = copy.deepcopy(req.interface)
            nic_id = mk_network_interface_id(req.resource_group_name, req.interface_name)
            nic.id = nic_id
            with self._lock:
                self.network_interfaces[nic_id] = nic
            return copy.deepcopy(nic)

        return self.create_or_update_behavior.invoke(request, create)

    def get(
        self, resource_group_name: str, interface_name: str, options: Any = None
    ) -> NetworkInterface:
        """Return the stored interface; NotFoundError if there is none."""
        nic_id = mk_network_interface_id(resource_group_name, interface_name)
        with self._lock:
            stored = self.network_interfaces.get(nic_id)
            if stored is None:
                raise NotFoundError()
            return copy.deepcopy(stored)

    def begin_delete(
        self, resource_group_name: str, interface_name: str, options: Any = None
    ) -> None:
        """Remove the interface if present."""
        nic_id = mk_network_interface_id(resource_group_name, interface_name)
        with self._lock:
            self.network_interfaces.pop(nic_id, None)
        return None