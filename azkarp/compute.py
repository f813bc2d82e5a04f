"""Virtual machine resource shapes used by the compute fakes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_SUBSCRIPTION_ID = "subscriptionID"
_VM_ID_FORMAT = (
    "/subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.Compute/virtualMachines/{name}"
)


class ResourceNotFoundError(Exception):
    """Raised when a requested resource does not exist."""

    error_code = "ResourceNotFound"

    def __init__(self, message: str = "ResourceNotFound") -> None:
        super().__init__(message)


@dataclass
class VirtualMachineProperties:
    time_created: datetime | None = None


@dataclass
class VirtualMachineIdentity:
    type: str | None = None
    user_assigned_identities: dict[str, dict[str, Any] | None] | None = None


@dataclass
class VirtualMachine:
    id: str | None = None
    name: str | None = None
    location: str | None = None
    zones: list[str] | None = None
    tags: dict[str, str | None] | None = None
    properties: VirtualMachineProperties | None = None
    identity: VirtualMachineIdentity | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON document form, leaving out unset fields."""
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        if self.name is not None:
            data["name"] = self.name
        if self.location is not None:
            data["location"] = self.location
        if self.zones is not None:
            data["zones"] = list(self.zones)
        if self.tags is not None:
            data["tags"] = dict(self.tags)
        if self.properties is not None:
            props: dict[str, Any] = {}
            if self.properties.time_created is not None:
                stamp = self.properties.time_created.isoformat()
                props["timeCreated"] = stamp.replace("+00:00", "Z")
            data["properties"] = props
        if self.identity is not None:
            ident: dict[str, Any] = {}
            if self.identity.type is not None:
                ident["type"] = self.identity.type
            if self.identity.user_assigned_identities is not None:
                ident["userAssignedIdentities"] = {
                    key: dict(value) if value is not None else None
                    for key, value in self.identity.user_assigned_identities.items()
                }
            data["identity"] = ident
        return data


@dataclass
class VirtualMachineUpdate:
    tags: dict[str, str | None] | None = None
    identity: VirtualMachineIdentity | None = None


def mk_vm_id(resource_group: str, vm_name: str) -> str:
    """Build the resource ID of a virtual machine."""
    return _VM_ID_FORMAT.format(sub=_SUBSCRIPTION_ID, rg=resource_group, name=vm_name)