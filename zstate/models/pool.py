"""ZFS pool models."""
from dataclasses import dataclass, field
from typing import Dict, Tuple

from zstate.core.executor import quote
from zstate.models.property import PropertyMap


@dataclass(frozen=True)
class Mirror:
    """A mirrored vdev; devices keep their listing order."""
    devices: Tuple[str, ...]


@dataclass(frozen=True)
class PoolLayout:
    """vdev topology of a pool: bare striped devices and mirror groups."""
    striped: Tuple[str, ...] = ()
    mirrors: Tuple[Mirror, ...] = ()

    def vdev_spec(self) -> str:
        parts = [quote(device) for device in self.striped]
        for mirror in self.mirrors:
            parts.append("mirror")
            parts.extend(quote(device) for device in mirror.devices)
        return " ".join(parts)


@dataclass
class Pool:
    """Snapshot of one zpool as described on the host."""
    name: str
    guid: str
    layout: PoolLayout
    properties: PropertyMap = field(default_factory=dict)


@dataclass
class CreatePool:
    """Everything needed to issue `zpool create`."""
    name: str
    layout: PoolLayout
    properties: Dict[str, str] = field(default_factory=dict)
