"""Keeps VM identities aligned with settings, tracked by a hash annotation."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from azkarp.cluster import (
    IN_PLACE_UPDATE_HASH_ANNOTATION_KEY,
    PROVIDER_ID_PREFIX,
    KubeClient,
    KubeNotFoundError,
    NodeClaim,
    Result,
)
from azkarp.compute import VirtualMachine, VirtualMachineIdentity, VirtualMachineUpdate

_log = logging.getLogger(__name__)

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619


@dataclass
class Settings:
    node_identities: list[str] = field(default_factory=list)


def _fnv1a_32(data: bytes) -> int:
    h = _FNV_OFFSET
    for byte in data:
        h = ((h ^ byte) * _FNV_PRIME) & 0xFFFFFFFF
    return h


def _encode(identities: Iterable[str]) -> bytes:
    unique = sorted(set(identities))
    doc = {"identities": {ident: {} for ident in unique}} if unique else {}
    text = json.dumps(doc, separators=(",", ":"), ensure_ascii=False)
    for char, escape in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026")):
        text = text.replace(char, escape)
    return text.encode("utf-8")


def _hash(identities: Iterable[str]) -> str:
    return str(_fnv1a_32(_encode(identities)))


def hash_from_vm(vm: VirtualMachine) -> str:
    """Hash of the user-assigned identities present on a VM."""
    identities: Iterable[str] = ()
    if vm.identity is not None and vm.identity.user_assigned_identities:
        identities = vm.identity.user_assigned_identities.keys()
    return _hash(identities)


def hash_from_nodeclaim(settings: Settings, nodeclaim: NodeClaim | None) -> str:
    """Hash of the goal state for a node claim under the given settings."""
    return _hash(settings.node_identities)


def _to_identity(identities: list[str]) -> VirtualMachineIdentity:
    return VirtualMachineIdentity(
        type="UserAssigned",
        user_assigned_identities={ident: {} for ident in identities},
    )


def calculate_vm_patch(settings: Settings, current_vm: VirtualMachine) -> VirtualMachineUpdate | None:
    """Return the update adding missing identities, or None; identities are never removed."""
    current: set[str] = set()
    if current_vm.identity is not None and current_vm.identity.user_assigned_identities:
        current = set(current_vm.identity.user_assigned_identities)
    to_add = [ident for ident in settings.node_identities if ident not in current]
    if not to_add:
        return None
    return VirtualMachineUpdate(identity=_to_identity(to_add))


def _vm_name(provider_id: str) -> str:
    if not provider_id.startswith(PROVIDER_ID_PREFIX):
        raise ValueError(f"provider ID {provider_id!r} is not an Azure provider ID")
    name = provider_id.rstrip("/").rsplit("/", 1)[-1]
    if not name:
        raise ValueError(f"provider ID {provider_id!r} has no VM name")
    return name


class InPlaceUpdateController:
    """Applies settings-driven updates to existing VMs."""

    def __init__(self, kube_client: KubeClient, instance_provider: Any) -> None:
        self.kube_client = kube_client
        self.instance_provider = instance_provider

    def name(self) -> str:
        return "nodeclaim.inplaceupdate"

    def reconcile(self, nodeclaim: NodeClaim, settings: Settings) -> Result:
        if nodeclaim.deletion_timestamp is not None or not nodeclaim.provider_id:
            return Result()

        goal_hash = hash_from_nodeclaim(settings, nodeclaim)
        actual_hash = nodeclaim.annotations.get(IN_PLACE_UPDATE_HASH_ANNOTATION_KEY, "")
        _log.debug("goal hash is: %r, actual hash is: %r", goal_hash, actual_hash)
        if goal_hash == actual_hash:
            return Result()

        vm_name = _vm_name(nodeclaim.provider_id)
        try:
            vm = self.instance_provider.get(vm_name)
        except Exception as exc:
            raise RuntimeError(f"getting azure VM for machine, {exc}") from exc

        update = calculate_vm_patch(settings, vm)
        _log.debug("applying patch to Azure VM: %r", update)
        if update is not None:
            try:
                self.instance_provider.update(vm_name, update)
            except Exception as exc:
                raise RuntimeError(f"failed to apply update to VM, {exc}") from exc

        nodeclaim.annotations[IN_PLACE_UPDATE_HASH_ANNOTATION_KEY] = goal_hash
        try:
            self.kube_client.patch_nodeclaim(copy.deepcopy(nodeclaim))
        except KubeNotFoundError:
            pass
        return Result()