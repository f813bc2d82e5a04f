import pytest

from azkarp.cluster import (
    NODE_POOL_LABEL_KEY,
    KubeClient,
    KubeNotFoundError,
    Node,
    NodeClaim,
    NodePool,
)


def test_apply_and_get_nodepool_round_trip():
    client = KubeClient()
    client.apply(NodePool(name="default", template_spec={"taints": ["a"]}))
    assert client.get_nodepool("default").template_spec == {"taints": ["a"]}


def test_missing_nodepool_raises():
    with pytest.raises(KubeNotFoundError):
        KubeClient().get_nodepool("absent")


def test_list_nodes_filters_by_label():
    client = KubeClient()
    client.apply(Node(name="a", labels={NODE_POOL_LABEL_KEY: "p"}), Node(name="b"))
    assert [n.name for n in client.list_nodes(NODE_POOL_LABEL_KEY)] == ["a"]
    assert len(client.list_nodes()) == 2


def test_create_with_generate_name():
    client = KubeClient()
    created = client.create_nodeclaim(NodeClaim(generate_name="pool-"))
    assert created.name.startswith("pool-")
    assert client.get_nodeclaim(created.name).name == created.name


def test_create_duplicate_raises():
    client = KubeClient()
    client.create_nodeclaim(NodeClaim(name="x"))
    with pytest.raises(ValueError):
        client.create_nodeclaim(NodeClaim(name="x"))


def test_delete_missing_node_raises():
    with pytest.raises(KubeNotFoundError):
        KubeClient().delete_node(Node(name="gone"))


def test_patch_missing_nodeclaim_raises():
    with pytest.raises(KubeNotFoundError):
        KubeClient().patch_nodeclaim(NodeClaim(name="gone"))


def test_patch_updates_stored_copy():
    client = KubeClient()
    client.apply(NodeClaim(name="x"))
    nc = client.get_nodeclaim("x")
    nc.annotations["k"] = "v"
    client.patch_nodeclaim(nc)
    assert client.get_nodeclaim("x").annotations == {"k": "v"}