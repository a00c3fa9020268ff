"""Tailable source descriptors and the filter applied to them."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

TERMINAL_TARGET = "terminal"


@dataclass(frozen=True, order=True)
class SourceKey:
    """Identity of a source: unique within the active worker set."""

    pod_name: str
    container_name: str

    def __str__(self) -> str:
        return f"{self.pod_name}/{self.container_name}"


@dataclass(frozen=True)
class Source:
    """One (pod, container) pair whose log is tailed by a single worker."""

    pod_name: str
    container_name: str
    sink_target: str = TERMINAL_TARGET

    @classmethod
    def build(cls, pod_name: str, container_name: str, output_dir: str | None = None) -> Source:
        """Build a source, deriving ``sink_target`` from *output_dir* when file output is on."""
        if output_dir is None:
            return cls(pod_name, container_name)
        target = os.path.join(output_dir, f"{pod_name}-{container_name}.txt")
        return cls(pod_name, container_name, target)

    @property
    def key(self) -> SourceKey:
        return SourceKey(self.pod_name, self.container_name)

    @property
    def display_prefix(self) -> str:
        return f"[{self.pod_name}][{self.container_name}]"

    @property
    def writes_to_file(self) -> bool:
        return self.sink_target != TERMINAL_TARGET


@dataclass(frozen=True)
class SourceFilter:
    """Inclusion filter over pod and container names.

    An empty dimension matches everything; a non-empty one matches only its
    members.  A container is selected when it passes both dimensions.
    """

    pod_names: frozenset[str] = field(default_factory=frozenset)
    container_names: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, pods: tuple[str, ...] | list[str] = (), containers: tuple[str, ...] | list[str] = ()) -> SourceFilter:
        return cls(frozenset(pods), frozenset(containers))

    @property
    def is_active(self) -> bool:
        return bool(self.pod_names or self.container_names)

    def matches(self, pod_name: str, container_name: str) -> bool:
        if self.pod_names and pod_name not in self.pod_names:
            return False
        return not self.container_names or container_name in self.container_names


@dataclass(frozen=True)
class PodContainers:
    """A pod and the names of its containers, as listed by the gateway."""

    pod_name: str
    container_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class LogOptions:
    """Parameters for a single log stream request."""

    follow: bool = True
    tail_lines: int | None = 1
    previous: bool = False
    since_seconds: int | None = None
    json_key: str | None = None
