"""Desired-state configuration."""
from zstate.config.loader import ConfigLoader, DesiredState
from zstate.core.errors import ConfigValidationError

__all__ = ['ConfigLoader', 'ConfigValidationError', 'DesiredState']
