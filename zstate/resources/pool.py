"""Pool entry points."""
from zstate.core.errors import CreateRecoveryError, ResourceError
from zstate.core.logger import get_logger
from zstate.core.properties import (
    flatten_properties,
    flatten_raw_properties,
    update_properties_in_state,
)
from zstate.models.pool import CreatePool, Pool
from zstate.models.resources import PoolSpec
from zstate.resources.base import Resource, operation, to_blocks

logger = get_logger(__name__)


class PoolResource(Resource[PoolSpec]):
    label = "zpool"
    list_command = "zpool"

    def create(self, spec: PoolSpec) -> PoolSpec:
        op = f"create zpool {spec.name}"
        with operation(op):
            self.ensure_absent(spec.name, self.manager.describe_pool)

            request = CreatePool(
                name=spec.name,
                layout=spec.layout(),
                properties={p.name: p.value for p in spec.declared},
            )
            try:
                pool = self.manager.create_pool(request)
            except CreateRecoveryError as e:
                record = self.populate_or_none(lambda: self._populate(spec, e.entity))
                raise ResourceError(op, e.original, record=record) from e

            logger.debug(f"committing guid: {pool.guid}")
            return self._populate(spec, pool)

    def read(self, spec: PoolSpec) -> PoolSpec:
        with operation(f"read zpool {spec.name}"):
            pool = self.manager.describe_pool(self.current_name(spec), spec.declared_names())
            return self._populate(spec, pool)

    def update(self, old: PoolSpec, new: PoolSpec) -> PoolSpec:
        guid = new.id or old.id
        with operation(f"update zpool {new.name}"):
            old_name = self.current_name(old.model_copy(update={"id": guid}))
            if new.name != old_name:
                self.manager.rename_pool(old_name, new.name)

            if new.layout() != old.layout():
                logger.warning(f"vdev changes for {new.name} are not applied; recreate the pool to change its layout")

            pool = self.manager.describe_pool(new.name, new.declared_names())
            self.manager.properties.apply_property_diff(
                new.name,
                pool.properties,
                old.declared_properties(),
                new.declared_properties(),
            )

        return self.read(new.model_copy(update={"id": guid}))

    def delete(self, spec: PoolSpec) -> None:
        with operation(f"delete zpool {spec.name}"):
            self.manager.destroy_pool(self.current_name(spec))

    def lookup(self, name: str) -> PoolSpec:
        with operation(f"lookup zpool {name}"):
            pool = self.manager.describe_pool(name)
            return PoolSpec(
                name=name,
                id=pool.guid,
                device=list(pool.layout.striped),
                mirror=[list(m.devices) for m in pool.layout.mirrors],
                properties=flatten_properties(pool.properties),
                raw_properties=flatten_raw_properties(pool.properties),
            )

    def _populate(self, spec: PoolSpec, pool: Pool) -> PoolSpec:
        return spec.model_copy(update={
            "name": pool.name,
            "id": pool.guid,
            "device": list(pool.layout.striped),
            "mirror": [list(m.devices) for m in pool.layout.mirrors],
            "declared": to_blocks(update_properties_in_state(
                pool.properties, spec.declared_properties(), (), spec.property_mode,
            )),
            "properties": flatten_properties(pool.properties),
            "raw_properties": flatten_raw_properties(pool.properties),
        })
