"""In-memory fake of the resource graph query API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from azkarp.compute import VirtualMachine
from azkarp.mocks import MockedFunction
from azkarp.virtualmachines import VirtualMachinesAPI

NODE_POOL_TAG_KEY = "karpenter.sh_nodepool"

Resource = dict[str, Any]


def list_query(resource_group: str) -> str:
    """Return the query listing node-pool-tagged VMs of a resource group."""
    return (
        "Resources"
        " | where type =~ 'microsoft.compute/virtualmachines'"
        f" | where resourceGroup == tolower('{resource_group}')"
        f" | where tags has_cs '{NODE_POOL_TAG_KEY}'"
    )


@dataclass
class ResourceGraphInput:
    query: str
    options: Any = None


class AzureResourceGraphAPI:
    """Answers resource graph queries from a fake virtual machines API."""

    def __init__(self, virtual_machines_api: VirtualMachinesAPI, resource_group: str) -> None:
        self.virtual_machines_api = virtual_machines_api
        self.resource_group = resource_group
        self.resources_behavior: MockedFunction[ResourceGraphInput, list[Resource]] = (
            MockedFunction()
        )

    def reset(self) -> None:
        """Clear recorded calls, canned output and injected errors."""
        self.resources_behavior.reset()

    def resources(self, query: str, options: Any = None) -> list[Resource]:
        """Run a query and return the matching resources as JSON documents."""
        request = ResourceGraphInput(query, options)
        resource_list = self._resource_list(query)
        return self.resources_behavior.invoke(request, lambda _req: resource_list)

    def _resource_list(self, query: str) -> list[Resource]:
        if query != list_query(self.resource_group):
            return []
        return [
            _to_resource(vm)
            for vm in self._load_vms()
            if vm.tags is not None and vm.tags.get(NODE_POOL_TAG_KEY) is not None
        ]

    def _load_vms(self) -> list[VirtualMachine]:
        return list(self.virtual_machines_api.instances.values())


def _to_resource(vm: VirtualMachine) -> Resource:
    return json.loads(json.dumps(vm.to_dict()))