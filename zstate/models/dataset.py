"""Dataset (filesystem/volume) models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from zstate.core.errors import UnsupportedDatasetType
from zstate.models.property import PropertyMap


class DatasetType(Enum):
    FILESYSTEM = "filesystem"
    VOLUME = "volume"


@dataclass
class Dataset:
    """Snapshot of one filesystem or volume as described on the host."""
    name: str
    type: DatasetType
    guid: str
    creation: str = ""
    used: str = ""
    available: str = ""
    referenced: str = ""
    mounted: str = ""
    mountpoint: str = ""
    volsize: str = ""  # raw (bytes), only set for volumes
    properties: PropertyMap = field(default_factory=dict)

    @classmethod
    def from_properties(cls, name: str, properties: PropertyMap) -> "Dataset":
        def value(prop: str) -> str:
            return properties[prop].value if prop in properties else ""

        type_value = value("type")
        try:
            ds_type = DatasetType(type_value)
        except ValueError:
            raise UnsupportedDatasetType(
                f"Unsupported zfs dataset type {type_value} with guid {value('guid')}"
            ) from None

        return cls(
            name=name,
            type=ds_type,
            guid=value("guid"),
            creation=value("creation"),
            used=value("used"),
            available=value("available"),
            referenced=value("referenced"),
            mounted=value("mounted"),
            mountpoint=value("mountpoint"),
            volsize=properties["volsize"].raw_value if "volsize" in properties else "",
            properties=properties,
        )

    @property
    def is_mounted(self) -> bool:
        return self.mounted == "yes"


@dataclass
class CreateDataset:
    """Everything needed to issue `zfs create`."""
    name: str
    type: DatasetType = DatasetType.FILESYSTEM
    mountpoint: Optional[str] = None
    volsize: Optional[str] = None
    sparse: bool = False
    properties: Dict[str, str] = field(default_factory=dict)
