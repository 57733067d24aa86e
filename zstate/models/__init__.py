"""Data models for zstate."""
from zstate.models.dataset import CreateDataset, Dataset, DatasetType
from zstate.models.ownership import Ownership
from zstate.models.pool import CreatePool, Mirror, Pool, PoolLayout
from zstate.models.property import (
    DeclaredProperty,
    Property,
    PropertyMode,
    PropertySource,
    is_pool_property,
)
from zstate.models.resources import FilesystemSpec, PoolSpec, PropertyBlock, VolumeSpec

__all__ = [
    'CreateDataset',
    'CreatePool',
    'Dataset',
    'DatasetType',
    'DeclaredProperty',
    'FilesystemSpec',
    'Mirror',
    'Ownership',
    'Pool',
    'PoolLayout',
    'PoolSpec',
    'Property',
    'PropertyBlock',
    'PropertyMode',
    'PropertySource',
    'VolumeSpec',
    'is_pool_property',
]
