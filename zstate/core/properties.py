"""Property read, diff/apply and state synthesis."""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from zstate.core.errors import PropertyOverrideConflict
from zstate.core.executor import CommandExecutor, quote
from zstate.core.logger import get_logger
from zstate.core.parsers import parse_formatted_properties, parse_raw_properties
from zstate.models.property import (
    DeclaredProperty,
    PropertyMap,
    PropertyMode,
    PropertySource,
    is_pool_property,
    is_user_property,
)

logger = get_logger(__name__)

OVERRIDDEN_SOURCES = (PropertySource.LOCAL, PropertySource.TEMPORARY)


def base_command(name: str) -> str:
    return "zpool" if is_pool_property(name) else "zfs"


def reset_command(name: str) -> Tuple[Optional[str], str]:
    """Return the command that puts a property back to its default.

    Returns:
        (command, reason) where command is None if the property can't be reset
    """
    if is_pool_property(name):
        return None, "zpool properties cannot be reset back to a default value"
    if "quota@" in name:
        return f"zfs set {quote(name)}=none", "quota"
    return f"zfs inherit -S {quote(name)}", "inherit"


def flatten_properties(properties: PropertyMap) -> Dict[str, str]:
    return {name: prop.value for name, prop in sorted(properties.items())}


def flatten_raw_properties(properties: PropertyMap) -> Dict[str, str]:
    return {name: prop.raw_value for name, prop in sorted(properties.items())}


class PropertyManager:
    """Reads, diffs and applies ZFS properties through a CommandExecutor."""

    def __init__(self, executor: CommandExecutor):
        self.executor = executor

    # ----------------------------
    # Reading
    # ----------------------------

    def read_some_properties(self, base: str, resource: str, selector: str,
                             properties: PropertyMap) -> None:
        """Two-pass fetch: formatted values with sources, then parsable values."""
        stdout = self.executor.execute(
            "{} get -H -o property,source,value {} {}", base, selector, quote(resource)
        )
        parse_formatted_properties(stdout, properties)

        stdout = self.executor.execute(
            "{} get -Hp -o property,value {} {}", base, selector, quote(resource)
        )
        parse_raw_properties(stdout, properties)

    def read_all_properties(self, base: str, resource: str, required: Sequence[str],
                            properties: PropertyMap) -> None:
        self.read_some_properties(base, resource, "all", properties)

        # Some properties (e.g. userquota@user) are only returned when asked for by name
        missing = [name for name in required if name not in properties]
        if missing:
            logger.debug(f"fetching properties not returned by 'all': {missing}")
            selector = quote(",".join(missing))
            self.read_some_properties(base, resource, selector, properties)

    def read_dataset_properties(self, name: str, required: Iterable[str]) -> PropertyMap:
        properties: PropertyMap = {}
        wanted = [prop for prop in required if not is_pool_property(prop)]
        self.read_all_properties("zfs", name, wanted, properties)
        return properties

    def read_pool_properties(self, name: str, required: Iterable[str],
                             properties: Optional[PropertyMap] = None) -> PropertyMap:
        """Read the pool's root dataset properties, then the zpool properties on top."""
        required = list(required)
        if properties is None:
            properties = {}
        dataset_required = [prop for prop in required if not is_pool_property(prop)]
        self.read_all_properties("zfs", name, dataset_required, properties)
        pool_required = [prop for prop in required if is_pool_property(prop)]
        self.read_all_properties("zpool", name, pool_required, properties)
        return properties

    # ----------------------------
    # Diff and apply
    # ----------------------------

    def apply_property_diff(
        self,
        target: str,
        actual: PropertyMap,
        old_declared: Sequence[DeclaredProperty],
        new_declared: Sequence[DeclaredProperty],
        overrides: Optional[Dict[str, Optional[str]]] = None,
    ) -> List[str]:
        """Bring the target's properties in line with the new declared set.

        Properties dropped from the declaration are reset first, then every
        declared property whose observed value differs is set.

        Returns:
            The commands that were issued, in order
        """
        desired = self._inject_overrides(new_declared, overrides or {})
        issued: List[str] = []

        desired_names = {prop.name for prop in desired}
        removed = []
        for prop in old_declared:
            if prop.name not in desired_names and prop.name not in removed:
                removed.append(prop.name)
        logger.debug(f"removed properties: {removed}")

        for name in removed:
            command, reason = reset_command(name)
            if command is None:
                logger.info(f"{reason}, leaving {name} at whatever value it's currently at")
                continue
            self.executor.execute("{} {}", command, quote(target))
            issued.append(f"{command} {quote(target)}")

        logger.debug(f"desired properties: {[(p.name, p.value) for p in desired]}")
        for prop in desired:
            observed = actual.get(prop.name)
            if observed is not None and observed.value == prop.value:
                continue
            base = base_command(prop.name)
            assignment = f"{quote(prop.name)}={quote(prop.value)}"
            logger.info(f"Setting {prop.name}={prop.value} on {target}")
            self.executor.execute("{} set {} {}", base, assignment, quote(target))
            issued.append(f"{base} set {assignment} {quote(target)}")

        return issued

    @staticmethod
    def _inject_overrides(declared: Sequence[DeclaredProperty],
                          overrides: Dict[str, Optional[str]]) -> List[DeclaredProperty]:
        check_overrides(declared, overrides)
        desired = list(declared)
        for name, value in overrides.items():
            if value is None:
                continue
            desired.append(DeclaredProperty(name=name, value=value))
        return desired


def check_overrides(declared: Sequence[DeclaredProperty], overrides: Iterable[str]) -> None:
    """Fail early when a property block shadows a dedicated attribute."""
    names = {prop.name for prop in declared}
    for name in overrides:
        if name in names:
            raise PropertyOverrideConflict(
                f"don't set '{name}' as a property block, use the dedicated attribute instead"
            )


def update_properties_in_state(
    observed: PropertyMap,
    declared: Sequence[DeclaredProperty],
    ignored: Iterable[str],
    mode,
) -> List[DeclaredProperty]:
    """Build the property list written back into the declared record.

    Declared properties come back with their observed value. Depending on the
    mode, properties overridden on the host but not declared are added too.
    The parsable value is kept whenever it is exactly what was declared.
    """
    mode = PropertyMode.parse(mode)
    defined = {prop.name: prop.value for prop in declared}
    ignored = set(ignored)

    def block(name: str) -> DeclaredProperty:
        prop = observed[name]
        value = prop.value
        if defined.get(name) == prop.raw_value:
            value = prop.raw_value
        return DeclaredProperty(name=name, value=value)

    result = [block(prop.name) for prop in declared
              if prop.name in observed and prop.name not in ignored]

    if mode == PropertyMode.DEFINED:
        return result

    for name in sorted(observed):
        if name in defined or name in ignored:
            continue
        if mode == PropertyMode.NATIVE and is_user_property(name):
            continue
        if observed[name].source not in OVERRIDDEN_SOURCES:
            continue
        # No reset mechanism exists for pool properties, so they are only tracked when declared
        if is_pool_property(name):
            continue
        result.append(block(name))

    return result
