"""In-memory fake of the virtual machines API."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from azkarp.compute import (
    ResourceNotFoundError,
    VirtualMachine,
    VirtualMachineIdentity,
    VirtualMachineProperties,
    VirtualMachineUpdate,
    mk_vm_id,
)
from azkarp.mocks import MockedFunction, MockedLRO, Poller


@dataclass
class VirtualMachineCreateOrUpdateInput:
    resource_group_name: str
    vm_name: str
    vm: VirtualMachine
    options: Any = None


@dataclass
class VirtualMachineUpdateInput:
    resource_group_name: str
    vm_name: str
    updates: VirtualMachineUpdate
    options: Any = None


@dataclass
class VirtualMachineDeleteInput:
    resource_group_name: str
    vm_name: str
    options: Any = None


@dataclass
class VirtualMachineGetInput:
    resource_group_name: str
    vm_name: str
    options: Any = None


class VirtualMachinesAPI:
    """Stores virtual machines in memory keyed by resource ID."""

    def __init__(self) -> None:
        self.create_or_update_behavior: MockedLRO[
            VirtualMachineCreateOrUpdateInput, VirtualMachine
        ] = MockedLRO()
        self.update_behavior: MockedLRO[VirtualMachineUpdateInput, VirtualMachine] = MockedLRO()
        self.delete_behavior: MockedLRO[VirtualMachineDeleteInput, None] = MockedLRO()
        self.get_behavior: MockedFunction[VirtualMachineGetInput, VirtualMachine] = (
            MockedFunction()
        )
        self.instances: dict[str, VirtualMachine] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear behaviours and stored instances; call between tests."""
        self.create_or_update_behavior.reset()
        self.delete_behavior.reset()
        self.get_behavior.reset()
        self.update_behavior.reset()
        with self._lock:
            self.instances.clear()

    def begin_create_or_update(
        self,
        resource_group_name: str,
        vm_name: str,
        parameters: VirtualMachine,
        options: Any = None,
    ) -> Poller[VirtualMachine]:
        request = VirtualMachineCreateOrUpdateInput(resource_group_name, vm_name, parameters, options)

        def create(req: VirtualMachineCreateOrUpdateInput) -> VirtualMachine:
            vm = copy.deepcopy(req.vm)
            vm_id = mk_vm_id(req.resource_group_name, req.vm_name)
            vm.id = vm_id
            vm.name = req.vm_name
            if vm.properties is None:
                vm.properties = VirtualMachineProperties()
            if vm.properties.time_created is None:
                vm.properties.time_created = datetime.now(timezone.utc)
            with self._lock:
                self.instances[vm_id] = vm
            return copy.deepcopy(vm)

        return self.create_or_update_behavior.invoke(request, create)

    def begin_update(
        self,
        resource_group_name: str,
        vm_name: str,
        updates: VirtualMachineUpdate,
        options: Any = None,
    ) -> Poller[VirtualMachine]:
        request = VirtualMachineUpdateInput(resource_group_name, vm_name, updates, options)

        def update(req: VirtualMachineUpdateInput) -> VirtualMachine:
            vm_id = mk_vm_id(req.resource_group_name, req.vm_name)
            with self._lock:
                stored = self.instances.get(vm_id)
                if stored is None:
                    raise ResourceNotFoundError()
                vm = copy.deepcopy(stored)
                vm.tags = copy.deepcopy(updates.tags)
                if updates.identity is not None:
                    if vm.identity is None:
                        vm.identity = VirtualMachineIdentity()
                    if updates.identity.type is not None:
                        vm.identity.type = updates.identity.type
                    if updates.identity.user_assigned_identities:
                        if vm.identity.user_assigned_identities is None:
                            vm.identity.user_assigned_identities = {}
                        vm.identity.user_assigned_identities.update(
                            copy.deepcopy(updates.identity.user_assigned_identities)
                        )
                self.instances[vm_id] = vm
            return copy.deepcopy(vm)

        return self.update_behavior.invoke(request, update)

    def get(
        self, resource_group_name: str, vm_name: str, options: Any = None
    ) -> VirtualMachine:
        """Return the stored VM; ResourceNotFoundError if there is none."""
        request = VirtualMachineGetInput(resource_group_name, vm_name, options)

        def fetch(req: VirtualMachineGetInput) -> VirtualMachine:
            with self._lock:
                stored = self.instances.get(mk_vm_id(req.resource_group_name, req.vm_name))
                if stored is None:
                    raise ResourceNotFoundError()
                return copy.deepcopy(stored)

        return self.get_behavior.invoke(request, fetch)

    def begin_delete(
        self, resource_group_name: str, vm_name: str, options: Any = None
    ) -> Poller[None]:
        request = VirtualMachineDeleteInput(resource_group_name, vm_name, options)

        def delete(req: VirtualMachineDeleteInput) -> None:
            with self._lock:
                self.instances.pop(mk_vm_id(req.resource_group_name, req.vm_name), None)
            return None

        return self.delete_behavior.invoke(request, delete)