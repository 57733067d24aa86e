"""Error taxonomy for remote ZFS operations."""
from typing import Any, Optional


class ZStateError(Exception):
    """Base class for every error raised by zstate."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DatasetNotFound(ZStateError):
    """The remote host reported that the dataset does not exist."""


class PoolNotFound(ZStateError):
    """The remote host reported that the pool does not exist."""


class PoolLayoutUnavailable(ZStateError):
    """`zpool list -v` returned nothing, not even the pool's own row."""


class RemoteCommandError(ZStateError):
    """A remote command wrote to stderr."""

    def __init__(self, stderr: str, command: Optional[str] = None):
        super().__init__(stderr.strip() or "remote command failed")
        self.stderr = stderr
        self.command = command


class TransportError(ZStateError):
    """The command never completed: connection failure or timeout."""

    def __init__(self, message: str, inner: Optional[BaseException] = None):
        super().__init__(message)
        self.inner = inner


class PropertyModeInvalid(ZStateError):
    pass


class PropertyOverrideConflict(ZStateError):
    """A generic property block names a property that has a dedicated attribute."""


class ParseError(ZStateError):
    """Tabular or stat output did not have the expected shape."""


class UnsupportedDatasetType(ZStateError):
    pass


class CreateRecoveryError(ZStateError):
    """Create failed, but the resource could still be described afterwards.

    The remote host may hold partially-created state, so the described entity
    travels with the original error instead of being dropped.
    """

    def __init__(self, original: ZStateError, entity: Any):
        super().__init__(str(original))
        self.original = original
        self.entity = entity


class ResourceError(ZStateError):
    """An entry-point failure, naming the operation that was attempted."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None,
                 message: Optional[str] = None, record: Any = None):
        detail = message if message is not None else str(cause)
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.cause = cause
        # Populated when the resource exists on the host despite the failure
        self.record = record


class ConfigValidationError(ZStateError):
    """The desired-state file could not be loaded or failed validation."""
