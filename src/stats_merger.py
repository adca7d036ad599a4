"""Stats merger module for batched player statistics imports.

Incoming batches have the shape ``{"players": {username: {field: value}}}``.
Each incoming record overwrites the fields it names on the stored record
and leaves every other field, and every other player, untouched.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from errors import ParseError, SchemaError, StorageReadError
from models import BatchInput, MergeResult, PlayerRecord, StatsAggregate, utc_now
from storage import read_json, resource_lock, write_json_atomic

logger = logging.getLogger(__name__)

EXPECTED_SHAPE = "{ players: { ... } }"


def merge(current: StatsAggregate, batch: BatchInput, now: datetime) -> StatsAggregate:
    """Fold a batch into an aggregate without mutating either.

    Args:
        current: The stored aggregate
        batch: Validated incoming records
        now: Timestamp recorded as the new updated_at

    Returns:
        A new StatsAggregate
    """
    players = dict(current.players)
    for username, incoming in batch.players.items():
        existing = players.get(username, PlayerRecord())
        players[username] = existing.overwritten_by(incoming)
    return StatsAggregate(players=players, updated_at=now)


class StatsMerger:
    """Owner of the persisted per-player aggregate."""

    def __init__(self, path: str, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize the merger.

        Args:
            path: Path to the statistics JSON file (must already exist)
            clock: Returns the timestamp recorded on each merge
        """
        self._path = path
        self._clock = clock
        self._lock = resource_lock(path)

    @property
    def path(self) -> str:
        return self._path

    @staticmethod
    def validate(payload: Any) -> BatchInput:
        """Parse and shape-check an import payload.

        Args:
            payload: JSON text (str or UTF-8 bytes) or an already decoded object

        Returns:
            BatchInput with one PlayerRecord per username

        Raises:
            ParseError: If the payload is not valid JSON
            SchemaError: If the payload lacks a ``players`` mapping of records
        """
        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError(f"Invalid JSON: {e}") from e
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ParseError(f"Invalid JSON: {e}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("players"), dict):
            raise SchemaError(f"Invalid schema: expected root {EXPECTED_SHAPE}")

        players = {}
        for username, record in payload["players"].items():
            if not isinstance(record, dict):
                raise SchemaError(
                    f"Invalid schema: players[{username!r}] must be an object, "
                    f"got {type(record).__name__}"
                )
            players[username] = PlayerRecord(record)
        return BatchInput(players=players)

    def read(self) -> StatsAggregate:
        """Load the persisted aggregate without taking the writer lock.

        Raises:
            StorageReadError: If the file is absent or corrupt
        """
        data = read_json(self._path)
        try:
            return StatsAggregate.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageReadError(f"Invalid stats in {self._path}: {e}", path=self._path) from e

    def import_batch(self, payload: Any, now: Optional[datetime] = None) -> MergeResult:
        """Validate a payload and merge it into the persisted aggregate.

        Validation happens before the file is touched, so a rejected payload
        leaves the aggregate unchanged. Read, merge and write run under the
        per-file lock.

        Raises:
            ParseError: If the payload is not valid JSON
            SchemaError: If the payload has the wrong shape
            StorageReadError: If the current aggregate cannot be loaded
            StorageWriteError: If the merged aggregate cannot be written
        """
        batch = self.validate(payload)

        with self._lock:
            current = self.read()
            merged = merge(current, batch, now or self._clock())
            write_json_atomic(self._path, merged.to_dict())

        logger.info(
            f"Imported stats for {len(batch.players)} player(s), "
            f"{len(merged.players)} total"
        )
        return MergeResult(
            updated_player_count=len(merged.players),
            updated_at=merged.updated_at,
        )
