"""ZFS property models and pool/dataset property classification."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from zstate.core.errors import ParseError, PropertyModeInvalid


class PropertySource(Enum):
    """Where a property's current value comes from."""
    LOCAL = "local"
    DEFAULT = "default"
    INHERITED = "inherited"
    TEMPORARY = "temporary"
    RECEIVED = "received"
    NONE = "none"


class PropertyMode(Enum):
    """Which observed properties are written back into the declared record."""
    DEFINED = "defined"  # only what the record declares
    NATIVE = "native"    # plus overridden native properties
    ALL = "all"          # plus overridden user properties

    @classmethod
    def parse(cls, value) -> "PropertyMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise PropertyModeInvalid(f"invalid value {value} for property_mode") from None


POOL_PROPERTIES = frozenset([
    "allocated",
    "altroot",
    "ashift",
    "autoexpand",
    "autoreplace",
    "autotrim",
    "bootfs",
    "cachefile",
    "capacity",
    "checkpoint",
    "comment",
    "compatibility",
    "dedupratio",
    "delegation",
    "expandsize",
    "failmode",
    "fragmentation",
    "free",
    "freeing",
    "guid",
    "health",
    "leaked",
    "listsnapshots",
    "load_guid",
    "multihost",
    "readonly",
    "size",
    "version",
])


def is_pool_property(name: str) -> bool:
    """True if the property is set with `zpool` rather than `zfs`."""
    return name in POOL_PROPERTIES or name.startswith("feature@")


def is_user_property(name: str) -> bool:
    return ":" in name


def parse_property_source(text: str) -> PropertySource:
    """Parse the SOURCE column of `zfs get`.

    Inherited values read "inherited from <parent>", so only the first word counts.
    """
    if text == "-":
        return PropertySource.NONE
    token = text.split(" ", 1)[0]
    try:
        source = PropertySource(token)
    except ValueError:
        raise ParseError(f"unrecognized source {text}") from None
    if source == PropertySource.NONE:
        raise ParseError(f"unrecognized source {text}")
    return source


@dataclass
class Property:
    """One observed property on a pool or dataset."""
    name: str
    source: PropertySource
    value: str
    raw_value: str = ""


PropertyMap = Dict[str, Property]


@dataclass(frozen=True)
class DeclaredProperty:
    """A (name, value) pair declared in a desired-state record."""
    name: str
    value: str
