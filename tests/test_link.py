from datetime import datetime, timezone

import pytest

from azkarp.cluster import (
    NODE_POOL_LABEL_KEY,
    NODECLAIM_LINKED_ANNOTATION_KEY,
    KubeClient,
    Node,
    NodeClaim,
    NodeClaimNotFoundError,
    NodePool,
)
from azkarp.compute import VirtualMachine, VirtualMachineProperties, mk_vm_id
from azkarp.link import LinkController
from azkarp.resourcegraph import NODE_POOL_TAG_KEY
from azkarp.virtualmachines import VirtualMachinesAPI

RG = "test-rg"
POOL = "default"


class _CloudProvider:
    def __init__(self, api):
        self.api = api

    def list(self):
        return [
            NodeClaim(name=vm.name, labels={NODE_POOL_LABEL_KEY: vm.tags[NODE_POOL_TAG_KEY]},
                      provider_id="azure://" + vm.id, creation_timestamp=vm.properties.time_created)
            for vm in list(self.api.instances.values()) if vm.tags and vm.tags.get(NODE_POOL_TAG_KEY)
        ]

    def link(self, nc):
        vm = self.api.instances.get(nc.provider_id.removeprefix("azure://"))
        if vm is None:
            raise NodeClaimNotFoundError(nc.provider_id)
        vm.tags = dict(vm.tags or {})
        vm.tags[NODE_POOL_TAG_KEY] = nc.labels[NODE_POOL_LABEL_KEY]


def _store(api, name, tagged=True):
    vm_id = mk_vm_id(RG, name)
    api.instances[vm_id] = VirtualMachine(
        id=vm_id, name=name, tags={NODE_POOL_TAG_KEY: POOL} if tagged else {},
        properties=VirtualMachineProperties(time_created=datetime.now(timezone.utc)),
    )
    return "azure://" + vm_id


@pytest.fixture
def env():
    api = VirtualMachinesAPI()
    client = KubeClient()
    return api, client, LinkController(client, _CloudProvider(api))


def test_links_with_spec(env):
    api, client, link = env
    pid = _store(api, "vm-a")
    spec = {"taints": [{"key": "testkey", "value": "testvalue", "effect": "NoSchedule"}]}
    client.apply(NodePool(name=POOL, template_spec=spec))
    link.reconcile()
    (nc,) = client.list_nodeclaims()
    assert nc.spec == spec
    assert nc.annotations[NODECLAIM_LINKED_ANNOTATION_KEY] == pid
    assert api.get(RG, "vm-a").tags[NODE_POOL_TAG_KEY] == POOL


def test_links_many(env):
    api, client, link = env
    pids = {_store(api, f"vm-{i}") for i in range(100)}
    client.apply(NodePool(name=POOL))
    link.reconcile()
    claims = client.list_nodeclaims()
    assert {nc.annotations[NODECLAIM_LINKED_ANNOTATION_KEY] for nc in claims} == pids


def test_links_reowned_node(env):
    api, client, link = env
    pid = _store(api, "vm-a", tagged=False)
    client.apply(Node(name="n", labels={NODE_POOL_LABEL_KEY: POOL}, provider_id=pid), NodePool(name=POOL))
    link.reconcile()
    (nc,) = client.list_nodeclaims()
    assert nc.annotations[NODECLAIM_LINKED_ANNOTATION_KEY] == pid


def test_no_link_without_tag(env):
    api, client, link = env
    _store(api, "vm-a", tagged=False)
    client.apply(NodePool(name=POOL))
    link.reconcile()
    assert client.list_nodeclaims() == []


def test_no_link_without_nodepool(env):
    api, client, link = env
    _store(api, "vm-a")
    link.reconcile()
    assert client.list_nodeclaims() == []
    assert api.get(RG, "vm-a").name == "vm-a"


def test_no_link_when_already_linked(env):
    api, client, link = env
    pid = _store(api, "vm-a")
    client.apply(NodePool(name=POOL), NodeClaim(name="m", provider_id=pid))
    link.reconcile()
    assert len(client.list_nodeclaims()) == 1


def test_keeps_existing_tags(env):
    api, client, link = env
    _store(api, "vm-a")
    api.instances[mk_vm_id(RG, "vm-a")].tags["testKey"] = "testVal"
    client.apply(NodePool(name=POOL))
    link.reconcile()
    assert api.get(RG, "vm-a").tags["testKey"] == "testVal"


def test_cache_blocks_second_creation(env):
    api, client, link = env
    pid = _store(api, "vm-a")
    link.cache[pid] = None
    assert link.should_create_linked_nodeclaim(NodeClaim(provider_id=pid), []) is False
    assert link.should_create_linked_nodeclaim(NodeClaim(provider_id="azure://x"), []) is True