"""In-memory fake of the virtual machine extensions API."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from azkarp.mocks import MockedLRO, Poller

_EXTENSION_ID_FORMAT = (
    "/subscriptions/subscriptionID/resourceGroups/{rg}/providers/Microsoft.Compute"
    "/virtualMachines/{vm}/extensions/{ext}"
)


@dataclass
class VirtualMachineExtension:
    id: str | None = None
    name: str | None = None
    location: str | None = None
    tags: dict[str, str | None] | None = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class VirtualMachineExtensionCreateOrUpdateInput:
    resource_group_name: str
    virtual_machine_name: str
    virtual_machine_extension_name: str
    virtual_machine_extension: VirtualMachineExtension
    options: Any = None


def mk_vm_extension_id(resource_group_name: str, vm_name: str, extension_name: str) -> str:
    """Build the resource ID of a virtual machine extension."""
    return _EXTENSION_ID_FORMAT.format(rg=resource_group_name, vm=vm_name, ext=extension_name)


class VirtualMachineExtensionsAPI:
    """Answers extension creation calls; extensions are not kept."""

    def __init__(self) -> None:
        self.create_or_update_behavior: MockedLRO[
            VirtualMachineExtensionCreateOrUpdateInput, VirtualMachineExtension
        ] = MockedLRO()

    def reset(self) -> None:
        self.create_or_update_behavior.reset()

    def begin_create_or_update(
        self,
        resource_group_name: str,
        vm_name: str,
        extension_name: str,
        extension: VirtualMachineExtension,
        options: Any = None,
    ) -> Poller[VirtualMachineExtension]:
        request = VirtualMachineExtensionCreateOrUpdateInput(
            resource_group_name, vm_name, extension_name, extension, options
        )

        def create(req: VirtualMachineExtensionCreateOrUpdateInput) -> VirtualMachineExtension:
            result = copy.deepcopy(req.virtual_machine_extension)
            result.id = mk_vm_extension_id(
                req.resource_group_name,
                req.virtual_machine_name,
                req.virtual_machine_extension_name,
            )
            return result

        return self.create_or_update_behavior.invoke(request, create)