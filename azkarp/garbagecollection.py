"""Deletes cloud instances that no node claim owns."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any

from azkarp.cluster import (
    NODECLAIM_LINKED_ANNOTATION_KEY,
    KubeClient,
    KubeNotFoundError,
    Node,
    NodeClaim,
    NodeClaimNotFoundError,
    Result,
)

_log = logging.getLogger(__name__)

_RESOLUTION_WINDOW = timedelta(minutes=5)


class GarbageCollectionController:
    """Removes instances older than five minutes with no owning node claim."""

    def __init__(self, kube_client: KubeClient, cloud_provider: Any, link_controller: Any) -> None:
        self.kube_client = kube_client
        self.cloud_provider = cloud_provider
        self.link_controller = link_controller
        self.successful_count = 0

    def name(self) -> str:
        return "nodeclaim.garbagecollection"

    def reconcile(self) -> Result:
        try:
            retrieved = self.cloud_provider.list()
        except Exception as exc:
            raise RuntimeError(f"listing cloudprovider VMs, {exc}") from exc
        managed = [nc for nc in retrieved if nc.deletion_timestamp is None]
        nodeclaims = self.kube_client.list_nodeclaims()
        nodes = self.kube_client.list_nodes()
        resolved = {
            nc.provider_id or nc.annotations.get(NODECLAIM_LINKED_ANNOTATION_KEY, "")
            for nc in nodeclaims
            if nc.provider_id or nc.annotations.get(NODECLAIM_LINKED_ANNOTATION_KEY, "")
        }
        now = datetime.now(timezone.utc)

        def check(nc: NodeClaim) -> BaseException | None:
            recently_linked = nc.provider_id in self.link_controller.cache
            if (
                not recently_linked
                and nc.provider_id not in resolved
                and now - nc.creation_timestamp > _RESOLUTION_WINDOW
            ):
                try:
                    self._garbage_collect(nc, nodes)
                except Exception as exc:
                    return exc
            return None

        errors: list[BaseException] = []
        if managed:
            with ThreadPoolExecutor(max_workers=min(100, len(managed))) as pool:
                errors = [err for err in pool.map(check, managed) if err is not None]
        self.successful_count += 1
        if errors:
            raise ExceptionGroup("garbage collection failed", errors)
        requeue = timedelta(seconds=10) if self.successful_count <= 20 else timedelta(minutes=2)
        return Result(requeue_after=requeue)

    def _garbage_collect(self, nodeclaim: NodeClaim, nodes: list[Node]) -> None:
        try:
            self.cloud_provider.delete(nodeclaim)
        except NodeClaimNotFoundError:
            return
        _log.debug("garbage collected cloudprovider instance %s", nodeclaim.provider_id)
        node = next((n for n in nodes if n.provider_id == nodeclaim.provider_id), None)
        if node is not None:
            try:
                self.kube_client.delete_node(node)
            except KubeNotFoundError:
                return
            _log.debug("garbage collected node %s", node.name)