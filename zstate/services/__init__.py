"""Command runners for the managed host."""
from zstate.services.local import LocalRunner
from zstate.services.ssh import SSHRunner

__all__ = ['LocalRunner', 'SSHRunner']
