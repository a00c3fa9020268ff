"""Cluster watch events and pod status."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

POD_CREATION_MARKER = "Created pod"


class WatchEventType(StrEnum):
    """Watch event type as reported by the Kubernetes watch API."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class WatchEvent:
    """A single element of the cluster event stream.

    ``message`` is the human-readable ``v1.Event`` message, e.g.
    ``"Created pod: web-7d9f-x2kj"`` for a ReplicaSet's ``SuccessfulCreate``.
    """

    type: WatchEventType
    message: str = ""
    reason: str = ""
    involved_kind: str = ""
    involved_name: str = ""

    @property
    def is_pod_creation(self) -> bool:
        return self.type is WatchEventType.ADDED and POD_CREATION_MARKER in self.message

    @property
    def owner(self) -> str:
        """``Kind/name`` of the object that emitted the event, e.g. ``ReplicaSet/web-7d9f``."""
        if not self.involved_kind:
            return self.involved_name
        return f"{self.involved_kind}/{self.involved_name}"


@dataclass(frozen=True)
class PodStatus:
    """Subset of ``v1.PodStatus`` the health gate needs."""

    phase: str

    @property
    def is_running(self) -> bool:
        return self.phase == "Running"

    @property
    def is_terminal(self) -> bool:
        return self.phase in ("Succeeded", "Failed")
