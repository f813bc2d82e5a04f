"""Creates node claims for cloud instances that have none."""

from __future__ import annotations

import copy
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any

from cachetools import TTLCache

from azkarp.cluster import (
    NODE_POOL_LABEL_KEY,
    NODECLAIM_LINKED_ANNOTATION_KEY,
    KubeClient,
    KubeNotFoundError,
    Node,
    NodeClaim,
    NodeClaimNotFoundError,
    Result,
)

_log = logging.getLogger(__name__)


def _nodeclaim_from_node(node: Node) -> NodeClaim:
    return NodeClaim(
        name=node.name,
        labels=dict(node.labels),
        annotations=dict(node.annotations),
        provider_id=node.provider_id,
    )


class LinkController:
    """Links instances tagged with a node pool to new node claims."""

    def __init__(self, kube_client: KubeClient, cloud_provider: Any) -> None:
        self.kube_client = kube_client
        self.cloud_provider = cloud_provider
        # Recently linked provider IDs, to ride out stale cluster reads.
        self.cache: TTLCache[str, None] = TTLCache(maxsize=sys.maxsize, ttl=60)
        self._cache_lock = threading.Lock()

    def name(self) -> str:
        return "nodeclaim.link"

    def reconcile(self) -> Result:
        try:
            retrieved = list(self.cloud_provider.list())
        except Exception as exc:
            raise RuntimeError(f"listing cloudprovider VMs, {exc}") from exc
        nodeclaims = self.kube_client.list_nodeclaims()
        nodes = self.kube_client.list_nodes(NODE_POOL_LABEL_KEY)
        retrieved_ids = {nc.provider_id for nc in retrieved}
        for node in nodes:
            if not (retrieved and node.provider_id in retrieved_ids):
                retrieved.append(_nodeclaim_from_node(node))
        retrieved = [
            nc
            for nc in retrieved
            if nc.deletion_timestamp is None and nc.labels.get(NODE_POOL_LABEL_KEY, "")
        ]

        def run(nc: NodeClaim) -> BaseException | None:
            try:
                self._link(nc, nodeclaims)
            except Exception as exc:
                return exc
            return None

        errors: list[BaseException] = []
        if retrieved:
            with ThreadPoolExecutor(max_workers=min(100, len(retrieved))) as pool:
                errors = [err for err in pool.map(run, retrieved) if err is not None]
        if errors:
            raise ExceptionGroup("linking failed", errors)
        return Result(requeue_after=timedelta.max)

    def _link(self, retrieved: NodeClaim, existing: list[NodeClaim]) -> None:
        try:
            nodepool = self.kube_client.get_nodepool(retrieved.labels[NODE_POOL_LABEL_KEY])
        except KubeNotFoundError:
            return
        if self.should_create_linked_nodeclaim(retrieved, existing):
            nodeclaim = NodeClaim(
                generate_name=f"{nodepool.name}-",
                spec=copy.deepcopy(nodepool.template_spec),
                annotations={NODECLAIM_LINKED_ANNOTATION_KEY: retrieved.provider_id},
            )
            created = self.kube_client.create_nodeclaim(nodeclaim)
            _log.debug("generated nodeclaim %s from cloudprovider", created.name)
            with self._cache_lock:
                self.cache[retrieved.provider_id] = None
        try:
            self.cloud_provider.link(retrieved)
        except NodeClaimNotFoundError:
            pass

    def should_create_linked_nodeclaim(
        self, retrieved: NodeClaim, existing_nodeclaims: list[NodeClaim]
    ) -> bool:
        with self._cache_lock:
            if retrieved.provider_id in self.cache:
                return False
        return not any(
            nc.annotations.get(NODECLAIM_LINKED_ANNOTATION_KEY) == retrieved.provider_id
            or nc.provider_id == retrieved.provider_id
            for nc in existing_nodeclaims
        )