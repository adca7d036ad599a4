"""Scheduler thread module for periodic server probing.

Each tick queries the game server through a ProbeClient, turns the outcome
into a ProbeSample and appends it to the HistoryStore. Probe and storage
failures are logged and never stop the loop. Ticks never overlap: when a
tick runs past one or more interval boundaries, the missed slots are
skipped rather than run late in a burst.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

from config import Config
from errors import StorageError
from models import ProbeSample, utc_now
from probe_client import DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

IDLE = "IDLE"
RUNNING = "RUNNING"
STOPPED = "STOPPED"

FAILURE_ESCALATION_THRESHOLD = 5


def run_with_restart(
    target_func: Any,
    shutdown_event: threading.Event,
    thread_name: str,
    *args: Any,
    restart_delay: float = 30,
) -> None:
    """Run a function with automatic restart on exception.

    Catches any unhandled exception, logs it, waits ``restart_delay``
    seconds (checking shutdown_event during wait), then restarts the function.

    Args:
        target_func: The function to run
        shutdown_event: Event to signal shutdown
        thread_name: Name of the thread for logging
        *args: Arguments to pass to the function
        restart_delay: Seconds to wait before restarting
    """
    while not shutdown_event.is_set():
        try:
            target_func(*args)
        except Exception:
            logger.exception(
                f"Unhandled exception in {thread_name}, waiting to restart..."
            )

            if shutdown_event.wait(timeout=restart_delay):
                break

            logger.info(f"Restarting {thread_name}...")


class Scheduler:
    """Interval-driven prober that records one sample per tick.

    Lifecycle: IDLE -> RUNNING (start, when the interval is positive) ->
    STOPPED (stop). With a non-positive interval the scheduler stays IDLE.
    """

    def __init__(
        self,
        config: Config,
        probe_client: Any,
        history_store: Any,
        clock: Callable[[], Any] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        """Initialize the scheduler.

        Args:
            config: Target host/port and ping interval
            probe_client: ProbeClient used for each tick
            history_store: HistoryStore receiving the samples
            clock: Returns the wall-clock timestamp stamped on samples
            monotonic: Returns seconds for interval arithmetic
            timeout_ms: Probe timeout in milliseconds
        """
        self._config = config
        self._probe_client = probe_client
        self._history_store = history_store
        self._clock = clock
        self._monotonic = monotonic
        self._timeout_ms = timeout_ms

        self._state = IDLE
        self._tick_lock = threading.Lock()
        self._shutdown_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self.consecutive_failures = 0
        self.last_tick_at = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._config.ping_interval_sec > 0

    def start(self) -> bool:
        """Start ticking on a background thread.

        Returns:
            True if the scheduler was started, False if it is disabled
        """
        if not self.enabled:
            logger.info("Ping scheduler disabled (ping interval is 0)")
            return False
        if self._thread is not None and self._thread.is_alive():
            return True

        self._shutdown_event = threading.Event()
        self._thread = threading.Thread(
            target=run_with_restart,
            args=(self.run, self._shutdown_event, "scheduler", self._shutdown_event),
            name="scheduler",
            daemon=True,
        )
        self._thread.start()
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop issuing ticks and wait for the worker thread.

        An in-flight tick is allowed to complete.
        """
        if self._shutdown_event is not None:
            self._shutdown_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler thread did not stop within timeout")
        if self._state != IDLE:
            self._state = STOPPED

    def run(self, shutdown_event: Any) -> None:
        """Run the tick loop until shutdown.

        The first tick fires one full interval after the loop starts.

        Args:
            shutdown_event: Threading event to signal shutdown
        """
        interval = self._config.ping_interval_sec
        if interval <= 0:
            return

        self._state = RUNNING
        logger.info(
            f"Starting ping scheduler every {interval}s for "
            f"{self._config.host}:{self._config.port}"
        )

        next_tick = self._monotonic() + interval
        while not shutdown_event.is_set():
            remaining = next_tick - self._monotonic()
            if remaining > 0 and shutdown_event.wait(timeout=remaining):
                break
            if shutdown_event.is_set():
                break

            self.tick()

            next_tick += interval
            now = self._monotonic()
            if next_tick <= now:
                skipped = int((now - next_tick) // interval) + 1
                next_tick += skipped * interval
                logger.warning(f"Tick overran the interval, skipped {skipped} slot(s)")

        self._state = STOPPED
        logger.info("Ping scheduler stopped")

    def tick(self) -> Optional[ProbeSample]:
        """Probe once and append the resulting sample.

        Never raises. Returns the appended sample, or None when the tick was
        skipped because another tick is in flight or the append failed.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous tick still running, skipping this one")
            return None
        try:
            sample = self._probe()
            try:
                self._history_store.append(sample)
            except StorageError as e:
                logger.error(f"Failed to append ping sample: {e}")
                return None
            except Exception:
                logger.exception("Unexpected error appending ping sample")
                return None
            self.last_tick_at = sample.taken_at
            return sample
        finally:
            self._tick_lock.release()

    def _probe(self) -> ProbeSample:
        host, port = self._config.host, self._config.port
        try:
            result = self._probe_client.query(host, port, self._timeout_ms)
            players_online = int(result.players_online)
            players_max = int(result.players_max)
        except Exception as e:
            self._record_failure(e)
            return ProbeSample.offline(self._clock())

        if self.consecutive_failures:
            logger.info(
                f"{host}:{port} is reachable again after "
                f"{self.consecutive_failures} failed probe(s)"
            )
        self.consecutive_failures = 0
        return ProbeSample(
            taken_at=self._clock(),
            online=True,
            players_online=players_online,
            players_max=players_max,
        )

    def _record_failure(self, error: Exception) -> None:
        self.consecutive_failures += 1
        host, port = self._config.host, self._config.port
        logger.warning(f"Probe of {host}:{port} failed: {error}")
        if self.consecutive_failures == FAILURE_ESCALATION_THRESHOLD:
            logger.error(
                f"{host}:{port} unreachable for {FAILURE_ESCALATION_THRESHOLD} "
                "consecutive probes, recording offline samples"
            )
