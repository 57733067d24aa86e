"""Entry points used by the declarative-state layer, one class per resource kind."""
from zstate.resources.filesystem import FilesystemResource
from zstate.resources.pool import PoolResource
from zstate.resources.volume import VolumeResource

__all__ = ['FilesystemResource', 'PoolResource', 'VolumeResource']
