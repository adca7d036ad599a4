"""Error taxonomy shared by the storage, probe and import paths."""

from typing import Optional


class MonitorError(Exception):
    """Base class for all monitor domain errors."""
    pass


class ParseError(MonitorError):
    """Raised when a serialized import payload is not valid JSON."""
    pass


class SchemaError(MonitorError):
    """Raised when an import payload is well-formed but has the wrong shape."""
    pass


class StorageError(MonitorError):
    """Raised when a persisted resource cannot be read or written.

    Args:
        message: Human-readable description
        path: Path of the persisted file involved, if known
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class StorageReadError(StorageError):
    """Raised when a persisted file is missing, unreadable or corrupt."""
    pass


class StorageWriteError(StorageError):
    """Raised when a persisted file cannot be replaced with new content."""
    pass


class ProbeError(MonitorError):
    """Raised when the game server cannot be queried (timeout, network, protocol)."""
    pass
