"""Mountpoint ownership lookup and reconciliation."""
from typing import Optional, Union

from zstate.core.executor import CommandExecutor, quote
from zstate.core.logger import get_logger
from zstate.core.parsers import parse_ownership
from zstate.models.ownership import Ownership, is_real_mountpoint

logger = get_logger(__name__)


def get_file_ownership(executor: CommandExecutor, path: str) -> Ownership:
    """Return user, group, uid and gid owning a path on the host."""
    stdout = executor.execute("stat -c '%U,%G,%u,%g' {}", quote(path))
    return parse_ownership(stdout)


def lookup_mountpoint_ownership(executor: CommandExecutor, mountpoint: str,
                                mounted: bool = True) -> Optional[Ownership]:
    """Ownership of a mountpoint.

    None for none/legacy/empty, and for a real path with nothing mounted on
    it, without running stat.
    """
    if not is_real_mountpoint(mountpoint):
        logger.debug(f"mountpoint '{mountpoint}' has no directory, skipping ownership lookup")
        return None
    if not mounted:
        logger.debug(f"nothing is mounted on {mountpoint}, skipping ownership lookup")
        return None
    logger.debug(f"Fetching ownership of {mountpoint}")
    return get_file_ownership(executor, mountpoint)


def apply_ownership(
    executor: CommandExecutor,
    path: str,
    user: Optional[Union[str, int]] = None,
    group: Optional[Union[str, int]] = None,
    mounted: bool = True,
) -> None:
    """chown/chgrp a mountpoint. `user` and `group` may be names or numeric ids."""
    if not is_real_mountpoint(path):
        logger.debug(f"mountpoint '{path}' has no directory, not changing ownership")
        return
    if not mounted:
        if user is not None or group is not None:
            logger.warning(f"{path} is not mounted, not changing ownership")
        return

    if user is not None:
        logger.info(f"Setting owner of {path} to {user}")
        executor.execute("chown {} {}", quote(user), quote(path))

    if group is not None:
        logger.info(f"Setting group of {path} to {group}")
        executor.execute("chgrp {} {}", quote(group), quote(path))
