"""History store module for the bounded probe time-series.

The whole log is persisted as one JSON document and rewritten on every
append. Only the most recent ``capacity`` samples are retained.
"""

import logging

from errors import StorageReadError
from models import HistoryLog, ProbeSample
from storage import read_json, resource_lock, write_json_atomic

logger = logging.getLogger(__name__)

CAP = 15000


class HistoryStore:
    """Capacity-bounded append log of probe samples backed by a JSON file."""

    def __init__(self, path: str, capacity: int = CAP) -> None:
        """Initialize the history store.

        Args:
            path: Path to the history JSON file (must already exist)
            capacity: Maximum number of samples retained
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._path = path
        self._capacity = capacity
        self._lock = resource_lock(path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def capacity(self) -> int:
        return self._capacity

    def read(self) -> HistoryLog:
        """Load the full persisted log.

        Does not take the writer lock; the atomic rename on write guarantees
        a complete snapshot.

        Raises:
            StorageReadError: If the file is absent or corrupt
        """
        data = read_json(self._path)
        try:
            return HistoryLog.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageReadError(f"Invalid history in {self._path}: {e}", path=self._path) from e

    def append(self, sample: ProbeSample) -> None:
        """Append a sample, dropping the oldest entries beyond capacity.

        Args:
            sample: The sample to add at the end of the log

        Raises:
            StorageReadError: If the current log cannot be loaded
            StorageWriteError: If the new log cannot be written; the
                persisted log is left unchanged
        """
        with self._lock:
            log = self.read()
            log.samples.append(sample)
            if len(log.samples) > self._capacity:
                dropped = len(log.samples) - self._capacity
                log.samples = log.samples[-self._capacity:]
                logger.debug(f"History at capacity, dropped {dropped} oldest sample(s)")
            write_json_atomic(self._path, log.to_dict())
