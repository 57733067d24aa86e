"""ZFS pool and dataset lifecycle on the managed host."""
from typing import Iterable, List

from zstate.core.errors import (
    CreateRecoveryError,
    DatasetNotFound,
    PoolNotFound,
    ZStateError,
)
from zstate.core.executor import CommandExecutor, quote
from zstate.core.logger import get_logger
from zstate.core.parsers import parse_name_guid, parse_pool_layout
from zstate.core.properties import PropertyManager
from zstate.models.dataset import CreateDataset, Dataset, DatasetType
from zstate.models.pool import CreatePool, Pool, PoolLayout
from zstate.models.property import is_pool_property

logger = get_logger(__name__)


def _option_flags(flag: str, properties) -> List[str]:
    return [f"{flag} {quote(name)}={quote(value)}" for name, value in properties]


class ZFSManager:
    """Describes, creates, renames and destroys pools and datasets.

    Every call re-runs its commands; nothing is cached between calls.
    """

    def __init__(self, executor: CommandExecutor):
        self.executor = executor
        self.properties = PropertyManager(executor)

    # ----------------------------
    # Identity
    # ----------------------------

    def resolve_name_by_guid(self, kind: str, guid: str) -> str:
        """Find the current name of the pool ("zpool") or dataset ("zfs") with this guid."""
        stdout = self.executor.execute("{} list -H -o name,guid", kind)
        for name, candidate in parse_name_guid(stdout):
            if candidate == guid:
                logger.debug(f"found resource by guid: {name}")
                return name

        message = f"no resource found with guid {guid}"
        if kind == "zpool":
            raise PoolNotFound(message)
        raise DatasetNotFound(message)

    def dataset_name_by_guid(self, guid: str) -> str:
        return self.resolve_name_by_guid("zfs", guid)

    def pool_name_by_guid(self, guid: str) -> str:
        return self.resolve_name_by_guid("zpool", guid)

    # ----------------------------
    # Datasets
    # ----------------------------

    def describe_dataset(self, name: str, required: Iterable[str] = ()) -> Dataset:
        properties = self.properties.read_dataset_properties(name, required)
        return Dataset.from_properties(name, properties)

    def create_dataset(self, spec: CreateDataset) -> Dataset:
        """Create a filesystem or volume and describe it.

        If `zfs create` fails but the dataset can still be described afterwards
        (e.g. it was created and only a property failed), CreateRecoveryError
        carries both the original error and the described dataset.
        """
        properties = dict(spec.properties)
        options: List[str] = []

        if spec.type == DatasetType.FILESYSTEM:
            if spec.mountpoint:
                properties["mountpoint"] = spec.mountpoint
        elif spec.type == DatasetType.VOLUME:
            if spec.sparse:
                options.append("-s")
            options.append(f"-V {quote(spec.volsize)}")

        options.extend(_option_flags("-o", properties.items()))

        logger.info(f"Creating {spec.type.value}: {spec.name}")
        try:
            self.executor.execute("zfs create {} {}", " ".join(options), quote(spec.name))
        except ZStateError as create_error:
            self._recover(f"zfs create {spec.name}",
                          lambda: self.describe_dataset(spec.name, properties.keys()), create_error)

        return self.describe_dataset(spec.name, properties.keys())

    @staticmethod
    def _recover(operation: str, describe, create_error: ZStateError):
        """Describe after a failed create; re-raise the original error either way."""
        try:
            entity = describe()
        except ZStateError as describe_error:
            logger.debug(f"describe after failed {operation} also failed: {describe_error}")
            raise create_error
        logger.warning(f"{operation} failed but the resource exists: {create_error}")
        raise CreateRecoveryError(create_error, entity) from create_error

    def rename_dataset(self, old_name: str, new_name: str) -> None:
        logger.info(f"Renaming dataset {old_name} -> {new_name}")
        self.executor.execute("zfs rename {} {}", quote(old_name), quote(new_name))

    def destroy_dataset(self, name: str) -> None:
        logger.info(f"Destroying dataset {name} (recursive)")
        self.executor.execute("zfs destroy -r {}", quote(name))

    # ----------------------------
    # Pools
    # ----------------------------

    def read_pool_layout(self, name: str) -> PoolLayout:
        logger.debug(f"reading zpool layout for {name}")
        stdout = self.executor.execute("zpool list -HPv {}", quote(name))
        layout = parse_pool_layout(stdout)
        logger.debug(f"pool layout: {layout}")
        return layout

    def describe_pool(self, name: str, required: Iterable[str] = ()) -> Pool:
        layout = self.read_pool_layout(name)
        properties = self.properties.read_pool_properties(name, required)
        guid = properties["guid"].value if "guid" in properties else ""
        return Pool(name=name, guid=guid, layout=layout, properties=properties)

    def create_pool(self, spec: CreatePool) -> Pool:
        """Create a pool; pool properties go in -o, root dataset properties in -O."""
        pool_props = [(k, v) for k, v in spec.properties.items() if is_pool_property(k)]
        dataset_props = [(k, v) for k, v in spec.properties.items() if not is_pool_property(k)]
        options = _option_flags("-o", pool_props) + _option_flags("-O", dataset_props)

        logger.info(f"Creating pool: {spec.name}")
        try:
            self.executor.execute(
                "zpool create {} {} {}", " ".join(options), quote(spec.name), spec.layout.vdev_spec()
            )
        except ZStateError as create_error:
            self._recover(f"zpool create {spec.name}",
                          lambda: self.describe_pool(spec.name, spec.properties.keys()), create_error)

        return self.describe_pool(spec.name, spec.properties.keys())

    def rename_pool(self, old_name: str, new_name: str) -> None:
        """Rename a pool by exporting and re-importing it under the new name.

        This is not atomic: if the import fails the pool stays exported and
        must be imported by hand (`zpool import <old> <new>`).
        """
        logger.info(f"Renaming pool {old_name} -> {new_name} (export/import)")
        self.executor.execute("zpool export {}", quote(old_name))
        try:
            self.executor.execute("zpool import {} {}", quote(old_name), quote(new_name))
        except ZStateError:
            logger.error(
                f"Pool {old_name} was exported but could not be imported as {new_name}; "
                f"run 'zpool import {old_name} {new_name}' on the host to recover"
            )
            raise

    def destroy_pool(self, name: str) -> None:
        logger.info(f"Destroying pool {name}")
        self.executor.execute("zpool destroy {}", quote(name))
