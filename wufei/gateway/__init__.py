"""Cluster gateway: the list/get/watch/log-stream primitives Wufei consumes.

Exports:
    ClusterGateway -- abstract contract used by the tailing engine.
    KubeGateway    -- kubernetes-asyncio implementation.
"""

from wufei.gateway.base import ClusterGateway
from wufei.gateway.kube import KubeGateway

__all__ = ["ClusterGateway", "KubeGateway"]
