"""Volume (zvol) entry points."""
from zstate.core.errors import CreateRecoveryError, ResourceError
from zstate.core.logger import get_logger
from zstate.core.properties import (
    check_overrides,
    flatten_properties,
    flatten_raw_properties,
    update_properties_in_state,
)
from zstate.models.dataset import CreateDataset, Dataset, DatasetType
from zstate.models.resources import VolumeSpec
from zstate.resources.base import Resource, operation, to_blocks

logger = get_logger(__name__)

OVERRIDES = ("volsize",)


def observed_volsize(declared: str, volume: Dataset) -> str:
    """Keep the declared spelling when it matches the host, else the byte count."""
    prop = volume.properties.get("volsize")
    if prop is not None and declared in (prop.value, prop.raw_value):
        return declared
    return volume.volsize


class VolumeResource(Resource[VolumeSpec]):
    label = "volume"
    list_command = "zfs"

    def create(self, spec: VolumeSpec) -> VolumeSpec:
        op = f"create volume {spec.name}"
        with operation(op):
            check_overrides(spec.declared_properties(), OVERRIDES)
            self.ensure_absent(spec.name, self.manager.describe_dataset)

            request = CreateDataset(
                name=spec.name,
                type=DatasetType.VOLUME,
                volsize=spec.volsize,
                sparse=spec.sparse,
                properties={p.name: p.value for p in spec.declared},
            )
            try:
                volume = self.manager.create_dataset(request)
            except CreateRecoveryError as e:
                record = self.populate_or_none(lambda: self._populate(spec, e.entity))
                raise ResourceError(op, e.original, record=record) from e

            return self._populate(spec, volume)

    def read(self, spec: VolumeSpec) -> VolumeSpec:
        with operation(f"read volume {spec.name}"):
            volume = self.manager.describe_dataset(self.current_name(spec), spec.declared_names())
            return self._populate(spec, volume)

    def update(self, old: VolumeSpec, new: VolumeSpec) -> VolumeSpec:
        guid = new.id or old.id
        with operation(f"update volume {new.name}"):
            old_name = self.current_name(old.model_copy(update={"id": guid}))
            if new.name != old_name:
                self.manager.rename_dataset(old_name, new.name)

            if new.sparse != old.sparse:
                logger.warning(f"sparse can only be chosen when {new.name} is created, ignoring the change")

            volume = self.manager.describe_dataset(new.name, new.declared_names())
            self.manager.properties.apply_property_diff(
                new.name,
                volume.properties,
                old.declared_properties(),
                new.declared_properties(),
                overrides={"volsize": new.volsize},
            )

        return self.read(new.model_copy(update={"id": guid}))

    def delete(self, spec: VolumeSpec) -> None:
        with operation(f"delete volume {spec.name}"):
            self.manager.destroy_dataset(self.current_name(spec))

    def lookup(self, name: str) -> VolumeSpec:
        with operation(f"lookup volume {name}"):
            volume = self._require_volume(self.manager.describe_dataset(name))
            refreservation = volume.properties.get("refreservation")
            return VolumeSpec(
                name=name,
                id=volume.guid,
                volsize=volume.volsize,
                sparse=refreservation is not None and refreservation.value == "none",
                properties=flatten_properties(volume.properties),
                raw_properties=flatten_raw_properties(volume.properties),
            )

    @staticmethod
    def _require_volume(volume: Dataset) -> Dataset:
        if volume.type != DatasetType.VOLUME:
            raise ResourceError(
                f"read volume {volume.name}",
                message=f"{volume.name} is a {volume.type.value}, not a volume",
            )
        return volume

    def _populate(self, spec: VolumeSpec, volume: Dataset) -> VolumeSpec:
        self._require_volume(volume)
        return spec.model_copy(update={
            "name": volume.name,
            "id": volume.guid,
            "volsize": observed_volsize(spec.volsize, volume),
            "declared": to_blocks(update_properties_in_state(
                volume.properties, spec.declared_properties(), OVERRIDES, spec.property_mode,
            )),
            "properties": flatten_properties(volume.properties),
            "raw_properties": flatten_raw_properties(volume.properties),
        })
