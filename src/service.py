"""Service facade exposing read endpoints, on-demand probes and imports.

This is the surface an HTTP layer or the CLI calls into. It owns no state
beyond the configured stores and probe client.
"""

import logging
import os
from typing import Any, Optional, Union

from config import AppConfig, Config
from errors import ProbeError
from history_store import HistoryStore
from models import HistoryLog, MergeResult, ProbeFailure, ProbeResult, StatsAggregate
from probe_client import DEFAULT_TIMEOUT_MS, ProbeClient
from stats_merger import StatsMerger
from storage import HISTORY_FILENAME, STATS_FILENAME

logger = logging.getLogger(__name__)


class MonitorService:
    """Entry points for external collaborators."""

    def __init__(
        self,
        config: Config,
        history_store: HistoryStore,
        stats_merger: StatsMerger,
        probe_client: ProbeClient,
    ) -> None:
        self._config = config
        self._history_store = history_store
        self._stats_merger = stats_merger
        self._probe_client = probe_client

    @classmethod
    def from_config(cls, app_config: AppConfig, probe_client: ProbeClient) -> "MonitorService":
        """Build a service whose stores live in the configured data directory."""
        data_dir = app_config.storage.data_dir
        return cls(
            config=app_config.server,
            history_store=HistoryStore(
                os.path.join(data_dir, HISTORY_FILENAME),
                capacity=app_config.storage.history_capacity,
            ),
            stats_merger=StatsMerger(os.path.join(data_dir, STATS_FILENAME)),
            probe_client=probe_client,
        )

    @property
    def history_store(self) -> HistoryStore:
        return self._history_store

    def get_config(self) -> Config:
        return self._config

    def get_history(self) -> HistoryLog:
        return self._history_store.read()

    def get_stats(self) -> StatsAggregate:
        return self._stats_merger.read()

    def probe_now(
        self, host: Optional[str] = None, port: Optional[int] = None
    ) -> Union[ProbeResult, ProbeFailure]:
        """Probe a server immediately, independent of the scheduler.

        Defaults to the configured host and port. A failed probe is returned
        as a ProbeFailure rather than raised.
        """
        host = host or self._config.host
        port = port or self._config.port
        try:
            return self._probe_client.query(host, port, DEFAULT_TIMEOUT_MS)
        except ProbeError as e:
            logger.info(f"On-demand probe of {host}:{port} failed: {e}")
            return ProbeFailure(host=host, port=port, error=str(e))

    def import_batch(self, payload: Any) -> MergeResult:
        """Merge a serialized statistics batch into the stored aggregate.

        Raises:
            ParseError: If the payload is not valid JSON
            SchemaError: If the payload has the wrong shape
            StorageError: If the aggregate cannot be read or written
        """
        return self._stats_merger.import_batch(payload)
