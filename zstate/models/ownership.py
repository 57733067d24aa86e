"""Mountpoint ownership."""
from dataclasses import dataclass

UNMANAGED_MOUNTPOINTS = ("", "none", "legacy")


@dataclass(frozen=True)
class Ownership:
    user_name: str
    group_name: str
    uid: int
    gid: int


def is_real_mountpoint(mountpoint: str) -> bool:
    """False for the mountpoint sentinels that have no directory behind them."""
    return mountpoint not in UNMANAGED_MOUNTPOINTS
