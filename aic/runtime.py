from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterator


@dataclass
class InstanceStatus:
    """One instance as reported by the inventory source."""

    instance_id: str
    state: str  # pending|running|shutting-down|terminated|stopping|stopped
    source_dest_check: bool | None = None
    tags: dict[str, str] = field(default_factory=dict)
    private_ip: str | None = None
    public_ip: str | None = None

    def find_tag(self, name: str) -> str | None:
        return self.tags.get(name)


@dataclass
class TrackedInstance:
    id: str
    generation: int
    status: InstanceStatus


@dataclass
class TickResult:
    tick: int
    instances: int = 0
    evicted: list[str] = field(default_factory=list)
    mutations: list[str] = field(default_factory=list)
    dns_changes: dict[str, list[str]] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    duration_ms: float = 0


class InstanceRegistry:
    """Last observed status of every known instance, keyed by instance id.

    Each entry carries the generation (tick number) in which it was last seen.
    Only the reconciler thread touches the registry; readers get snapshots.
    """

    def __init__(self) -> None:
        self._instances: dict[str, TrackedInstance] = {}

    def observe(self, status: InstanceStatus, generation: int) -> TrackedInstance:
        inst = self._instances.get(status.instance_id)
        if inst is None:
            inst = TrackedInstance(id=status.instance_id, generation=generation, status=status)
            self._instances[inst.id] = inst
        inst.status = status
        inst.generation = generation
        return inst

    def evict_stale(self, generation: int) -> list[str]:
        """Drop every entry not observed in `generation`. Returns the evicted ids."""
        stale = [i.id for i in self._instances.values() if i.generation != generation]
        for instance_id in stale:
            del self._instances[instance_id]
        return stale

    def get(self, instance_id: str) -> TrackedInstance | None:
        return self._instances.get(instance_id)

    def values(self) -> list[TrackedInstance]:
        return list(self._instances.values())

    def snapshot(self) -> tuple[TrackedInstance, ...]:
        """Detached copies, safe to hand to other threads."""
        return tuple(
            TrackedInstance(id=i.id, generation=i.generation, status=replace(i.status, tags=dict(i.status.tags)))
            for i in sorted(self._instances.values(), key=lambda i: i.id)
        )

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._instances

    def __iter__(self) -> Iterator[TrackedInstance]:
        return iter(self.values())
