"""Parsers for tab-delimited zfs/zpool output and stat lines."""
from functools import reduce
from typing import Iterable, Iterator, List, Optional, Tuple

from zstate.core.errors import ParseError, PoolLayoutUnavailable
from zstate.models.ownership import Ownership
from zstate.models.pool import Mirror, PoolLayout
from zstate.models.property import Property, PropertyMap, parse_property_source

FIELD_SEPARATOR = "\t"


def iter_rows(output: str, columns: Optional[int] = None) -> Iterator[List[str]]:
    """Split -H output into rows of fields.

    Fields are split on tabs only and never trimmed. When `columns` is given,
    every row must have exactly that many fields.
    """
    if not output:
        return
    for line_number, line in enumerate(output.split("\n"), start=1):
        if line == "":
            continue
        fields = line.split(FIELD_SEPARATOR)
        if columns is not None and len(fields) != columns:
            raise ParseError(
                f"line {line_number}: expected {columns} fields, got {len(fields)}: {line!r}"
            )
        yield fields


def parse_formatted_properties(output: str, properties: PropertyMap) -> None:
    """Merge `get -H -o property,source,value` rows into `properties`."""
    for name, source_text, value in iter_rows(output, columns=3):
        try:
            source = parse_property_source(source_text)
        except ParseError as e:
            raise ParseError(f"Error in property {name}: {e}") from None
        properties[name] = Property(name=name, source=source, value=value)


def parse_raw_properties(output: str, properties: PropertyMap) -> None:
    """Attach `get -Hp -o property,value` values to already-known properties.

    Names missing from the formatted pass are ignored.
    """
    for name, raw_value in iter_rows(output, columns=2):
        prop = properties.get(name)
        if prop is None:
            continue
        prop.raw_value = raw_value


def parse_name_guid(output: str) -> Iterator[Tuple[str, str]]:
    for name, guid in iter_rows(output, columns=2):
        yield name, guid


def _add_vdev(layout: PoolLayout, name: str) -> PoolLayout:
    # "mirror" is a reserved vdev name and -P makes every device an absolute path
    if name.startswith("mirror"):
        return PoolLayout(striped=layout.striped, mirrors=layout.mirrors + (Mirror(devices=()),))
    if layout.mirrors:
        current = layout.mirrors[-1]
        grown = Mirror(devices=current.devices + (name,))
        return PoolLayout(striped=layout.striped, mirrors=layout.mirrors[:-1] + (grown,))
    return PoolLayout(striped=layout.striped + (name,), mirrors=layout.mirrors)


def build_pool_layout(vdev_names: Iterable[str]) -> PoolLayout:
    """Fold vdev names, in listing order, into a PoolLayout."""
    return reduce(_add_vdev, vdev_names, PoolLayout())


def parse_pool_layout(output: str) -> PoolLayout:
    """Parse `zpool list -HPv <pool>`.

    The first row is the pool's own statistics and is skipped. Vdev rows are
    indented, so their name is the second field.
    """
    rows = list(iter_rows(output))
    if not rows:
        raise PoolLayoutUnavailable("failed to read pool layout")

    names = []
    for fields in rows[1:]:
        if len(fields) < 2:
            raise ParseError(f"malformed vdev row: {FIELD_SEPARATOR.join(fields)!r}")
        names.append(fields[1])
    return build_pool_layout(names)


def parse_ownership(output: str) -> Ownership:
    """Parse a `stat -c '%U,%G,%u,%g'` line."""
    line = output.rstrip("\n")
    values = line.split(",")
    if len(values) != 4:
        raise ParseError(f"expected 4 comma-separated stat fields, got {len(values)}: {line!r}")
    user_name, group_name, uid, gid = values
    try:
        return Ownership(user_name=user_name, group_name=group_name, uid=int(uid), gid=int(gid))
    except ValueError:
        raise ParseError(f"non-numeric uid/gid in stat output: {line!r}") from None
