"""Assembles the node claim controllers."""

from __future__ import annotations

import logging
from typing import Any

from azkarp.cluster import KubeClient
from azkarp.garbagecollection import GarbageCollectionController
from azkarp.inplaceupdate import InPlaceUpdateController
from azkarp.link import LinkController

_log = logging.getLogger(__name__)


def new_controllers(kube_client: KubeClient, cloud_provider: Any, instance_provider: Any) -> list[Any]:
    """Return the garbage collection, link and in-place update controllers."""
    link_controller = LinkController(kube_client, cloud_provider)
    controllers = [
        GarbageCollectionController(kube_client, cloud_provider, link_controller),
        link_controller,
        InPlaceUpdateController(kube_client, instance_provider),
    ]
    _log.debug("created %d controllers", len(controllers))
    return controllers