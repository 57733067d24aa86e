"""Filesystem entry points: create, read, update, delete and lookup."""
from zstate.core.errors import CreateRecoveryError, ResourceError, ZStateError
from zstate.core.logger import get_logger
from zstate.core.ownership import apply_ownership, lookup_mountpoint_ownership
from zstate.core.properties import (
    check_overrides,
    flatten_properties,
    flatten_raw_properties,
    update_properties_in_state,
)
from zstate.models.dataset import CreateDataset, Dataset, DatasetType
from zstate.models.ownership import is_real_mountpoint
from zstate.models.resources import FilesystemSpec
from zstate.resources.base import Resource, operation, to_blocks

logger = get_logger(__name__)

# Managed through the dedicated `mountpoint` attribute, never as a property block
OVERRIDES = ("mountpoint",)


class FilesystemResource(Resource[FilesystemSpec]):
    label = "filesystem"
    list_command = "zfs"

    def create(self, spec: FilesystemSpec) -> FilesystemSpec:
        op = f"create filesystem {spec.name}"
        with operation(op):
            check_overrides(spec.declared_properties(), OVERRIDES)
            self.ensure_absent(spec.name, self.manager.describe_dataset)

            request = CreateDataset(
                name=spec.name,
                type=DatasetType.FILESYSTEM,
                mountpoint=spec.mountpoint,
                properties={p.name: p.value for p in spec.declared},
            )
            try:
                filesystem = self.manager.create_dataset(request)
            except CreateRecoveryError as e:
                record = self.populate_or_none(lambda: self._populate(spec, e.entity))
                raise ResourceError(op, e.original, record=record) from e

            logger.debug(f"committing guid: {filesystem.guid}")
            try:
                apply_ownership(self.executor, spec.mountpoint, spec.ownership_user(), spec.ownership_group(),
                                mounted=filesystem.is_mounted)
            except ZStateError as e:
                # The filesystem exists on the host even though its ownership is not as declared
                record = self.populate_or_none(lambda: self._populate(spec, filesystem))
                raise ResourceError(op, e, record=record) from e
            return self._populate(spec, filesystem)

    def read(self, spec: FilesystemSpec) -> FilesystemSpec:
        with operation(f"read filesystem {spec.name}"):
            name = self.current_name(spec)
            filesystem = self.manager.describe_dataset(name, spec.declared_names())
            return self._populate(spec, filesystem)

    def update(self, old: FilesystemSpec, new: FilesystemSpec) -> FilesystemSpec:
        guid = new.id or old.id
        with operation(f"update filesystem {new.name}"):
            old_name = self.current_name(old.model_copy(update={"id": guid}))
            if new.name != old_name:
                self.manager.rename_dataset(old_name, new.name)

            filesystem = self.manager.describe_dataset(new.name, new.declared_names())
            self.manager.properties.apply_property_diff(
                new.name,
                filesystem.properties,
                old.declared_properties(),
                new.declared_properties(),
                overrides={"mountpoint": new.mountpoint},
            )

            if is_real_mountpoint(new.mountpoint):
                moved = new.mountpoint != old.mountpoint
                user = new.ownership_user()
                group = new.ownership_group()
                apply_ownership(
                    self.executor,
                    new.mountpoint,
                    user if moved or user != old.ownership_user() else None,
                    group if moved or group != old.ownership_group() else None,
                    mounted=filesystem.is_mounted,
                )

        return self.read(new.model_copy(update={"id": guid}))

    def delete(self, spec: FilesystemSpec) -> None:
        with operation(f"delete filesystem {spec.name}"):
            self.manager.destroy_dataset(self.current_name(spec))

    def lookup(self, name: str) -> FilesystemSpec:
        """Read-only view of an existing filesystem, ownership included."""
        with operation(f"lookup filesystem {name}"):
            filesystem = self._require_filesystem(self.manager.describe_dataset(name))
            ownership = lookup_mountpoint_ownership(self.executor, filesystem.mountpoint, filesystem.is_mounted)
            spec = FilesystemSpec(
                name=name,
                id=filesystem.guid,
                mountpoint=filesystem.mountpoint,
                properties=flatten_properties(filesystem.properties),
                raw_properties=flatten_raw_properties(filesystem.properties),
            )
            if ownership is not None:
                spec = spec.model_copy(update={
                    "owner": ownership.user_name,
                    "group": ownership.group_name,
                    "uid": ownership.uid,
                    "gid": ownership.gid,
                })
            return spec

    @staticmethod
    def _require_filesystem(filesystem: Dataset) -> Dataset:
        if filesystem.type != DatasetType.FILESYSTEM:
            raise ResourceError(
                f"read filesystem {filesystem.name}",
                message=f"{filesystem.name} is a {filesystem.type.value}, not a filesystem",
            )
        return filesystem

    def _populate(self, spec: FilesystemSpec, filesystem: Dataset) -> FilesystemSpec:
        self._require_filesystem(filesystem)

        update = {
            "name": filesystem.name,
            "id": filesystem.guid,
            "mountpoint": filesystem.mountpoint,
            "declared": to_blocks(update_properties_in_state(
                filesystem.properties, spec.declared_properties(), OVERRIDES, spec.property_mode,
            )),
            "properties": flatten_properties(filesystem.properties),
            "raw_properties": flatten_raw_properties(filesystem.properties),
        }

        ownership = lookup_mountpoint_ownership(self.executor, filesystem.mountpoint, filesystem.is_mounted)
        if ownership is None:
            # No mounted directory behind the mountpoint: tracked ownership is cleared
            update.update(owner=None, uid=None, group=None, gid=None)
        else:
            # Only fields the record tracks are refreshed
            if spec.owner is not None:
                update["owner"] = ownership.user_name
            if spec.uid is not None:
                update["uid"] = ownership.uid
            if spec.group is not None:
                update["group"] = ownership.group_name
            if spec.gid is not None:
                update["gid"] = ownership.gid

        return spec.model_copy(update=update)
