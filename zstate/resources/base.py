"""Shared plumbing for the pool/filesystem/volume entry points."""
from contextlib import contextmanager
from typing import Callable, Generic, List, Optional, TypeVar

from zstate.core.errors import (
    DatasetNotFound,
    PoolNotFound,
    ResourceError,
    ZStateError,
)
from zstate.core.logger import get_logger
from zstate.core.zfs_manager import ZFSManager
from zstate.models.property import DeclaredProperty
from zstate.models.resources import PropertyBlock, ResourceSpec

logger = get_logger(__name__)

SpecT = TypeVar("SpecT", bound=ResourceSpec)

NOT_FOUND = (DatasetNotFound, PoolNotFound)


@contextmanager
def operation(description: str):
    """Re-raise engine errors as a ResourceError naming the operation."""
    try:
        yield
    except ResourceError:
        raise
    except ZStateError as e:
        logger.debug(f"{description} failed: {e}")
        raise ResourceError(description, e) from e


def to_blocks(properties: List[DeclaredProperty]) -> List[PropertyBlock]:
    return [PropertyBlock(name=p.name, value=p.value) for p in properties]


class Resource(Generic[SpecT]):
    """CRUD entry points for one kind of resource.

    Subclasses set `label` (used in messages) and `list_command` ("zfs" or
    "zpool", used to resolve a guid to the current name).
    """

    label = "resource"
    list_command = "zfs"

    def __init__(self, manager: ZFSManager):
        self.manager = manager
        self.executor = manager.executor

    def resolve(self, guid: str) -> str:
        """Current name of the resource identified by `guid`."""
        with operation(f"resolve {self.label} guid {guid}"):
            return self.manager.resolve_name_by_guid(self.list_command, guid)

    def current_name(self, spec: SpecT) -> str:
        """The name on the host right now, following renames made anywhere."""
        if not spec.id:
            return spec.name
        try:
            return self.manager.resolve_name_by_guid(self.list_command, spec.id)
        except NOT_FOUND as e:
            raise ResourceError(
                f"read {self.label} {spec.name}",
                e,
                message=(
                    f"the {self.label} {spec.name} identified by guid {spec.id} could not be found. "
                    "It was likely deleted on the server outside of zstate"
                ),
            ) from e

    def ensure_absent(self, name: str, describe: Callable[[str], object]) -> None:
        """Existence check before create; only not-found counts as absent."""
        try:
            describe(name)
        except NOT_FOUND:
            return
        raise ResourceError(
            f"create {self.label} {name}",
            message=f"{self.label} {name} already exists, import it instead",
        )

    def populate_or_none(self, populate: Callable[[], SpecT]) -> Optional[SpecT]:
        """Best-effort record for a partially created resource."""
        try:
            return populate()
        except ZStateError as e:
            logger.debug(f"could not build a record for the partially created {self.label}: {e}")
            return None
