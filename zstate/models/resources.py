"""Desired-state records for pools, filesystems and volumes."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from zstate.models.pool import Mirror, PoolLayout
from zstate.models.property import DeclaredProperty


class PropertyBlock(BaseModel):
    """One declared property."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    name: str
    value: str

    @field_validator('value', mode='before')
    @classmethod
    def coerce_value(cls, v):
        """YAML turns `on`/`12` into bools and ints; ZFS wants strings."""
        if isinstance(v, bool):
            return "on" if v else "off"
        if isinstance(v, (int, float)):
            return str(v)
        return v


class ResourceSpec(BaseModel):
    """Fields shared by every managed resource.

    `id` is the guid of the resource once it exists; it survives renames.
    `properties` and `raw_properties` are filled in from the host on read.
    """

    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    name: str
    declared: List[PropertyBlock] = Field(default_factory=list, alias="property")
    property_mode: Literal["defined", "native", "all"] = "defined"
    id: Optional[str] = None
    properties: Dict[str, str] = Field(default_factory=dict)
    raw_properties: Dict[str, str] = Field(default_factory=dict)

    @field_validator('declared', mode='before')
    @classmethod
    def accept_mapping(cls, v):
        if isinstance(v, dict):
            return [{"name": name, "value": value} for name, value in v.items()]
        return v

    @field_validator('declared')
    @classmethod
    def unique_names(cls, v):
        seen = set()
        for block in v:
            if block.name in seen:
                raise ValueError(f"property '{block.name}' is declared more than once")
            seen.add(block.name)
        return v

    def declared_properties(self) -> List[DeclaredProperty]:
        return [DeclaredProperty(name=b.name, value=b.value) for b in self.declared]

    def declared_names(self) -> List[str]:
        return [b.name for b in self.declared]

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FilesystemSpec(ResourceSpec):
    """A ZFS filesystem and the ownership of its mountpoint."""

    mountpoint: str = "none"
    owner: Optional[str] = None
    uid: Optional[int] = None
    group: Optional[str] = None
    gid: Optional[int] = None

    @model_validator(mode='after')
    def validate_ownership(self) -> 'FilesystemSpec':
        if self.owner is not None and self.uid is not None:
            raise ValueError("owner and uid are mutually exclusive")
        if self.group is not None and self.gid is not None:
            raise ValueError("group and gid are mutually exclusive")
        return self

    def ownership_user(self):
        return self.uid if self.uid is not None else self.owner

    def ownership_group(self):
        return self.gid if self.gid is not None else self.group


class VolumeSpec(ResourceSpec):
    """A ZFS volume (zvol)."""

    volsize: str
    sparse: bool = False

    @field_validator('volsize', mode='before')
    @classmethod
    def coerce_volsize(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class PoolSpec(ResourceSpec):
    """A zpool built from striped devices and/or mirror groups."""

    device: List[str] = Field(default_factory=list)
    mirror: List[List[str]] = Field(default_factory=list)

    @field_validator('mirror')
    @classmethod
    def validate_mirrors(cls, v):
        for devices in v:
            if len(devices) < 2:
                raise ValueError(f"a mirror needs at least 2 devices, got {devices}")
        return v

    @model_validator(mode='after')
    def validate_vdevs(self) -> 'PoolSpec':
        if not self.device and not self.mirror:
            raise ValueError("a pool needs at least one device or mirror")
        return self

    def layout(self) -> PoolLayout:
        return PoolLayout(
            striped=tuple(self.device),
            mirrors=tuple(Mirror(devices=tuple(devices)) for devices in self.mirror),
        )
