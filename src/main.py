"""Main entry point module.

Handles CLI arguments, storage bootstrap, scheduler lifecycle, signal
handling, and clean shutdown.
"""

import argparse
import json
import logging
import signal
import sys
import threading
from typing import Any, List, Optional

import config as config_module
import storage
from errors import MonitorError
from probe_client import McStatusProbeClient
from scheduler import Scheduler
from service import MonitorService


logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 30
SHUTDOWN_TIMEOUT_SECONDS = 10


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Minecraft Server Status Monitor")
    parser.add_argument(
        "--config", help="Path to configuration YAML file (defaults to environment variables)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Run the periodic ping scheduler")

    ping = sub.add_parser("ping", help="Probe the server once and print the result")
    ping.add_argument("--host", help="Override the configured host")
    ping.add_argument("--port", type=int, help="Override the configured port")

    imp = sub.add_parser("import", help="Merge a player statistics batch")
    imp.add_argument("file", help="Path to a JSON batch file, or '-' for stdin")

    sub.add_parser("history", help="Print the recorded ping history")
    sub.add_parser("stats", help="Print the player statistics aggregate")
    sub.add_parser("config", help="Print the effective server configuration")
    return parser


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _read_payload(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def run_scheduler(scheduler: Scheduler) -> int:
    """Run the scheduler until SIGTERM/SIGINT, or return at once when it is disabled.

    Returns:
        Exit code (0 for clean shutdown)
    """
    if not scheduler.start():
        logger.info("Nothing to run, exiting")
        return 0
    logger.info("Started scheduler thread")

    shutdown_event = threading.Event()

    def handle_signal(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, initiating shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    # Main thread heartbeat
    try:
        while not shutdown_event.wait(timeout=HEARTBEAT_INTERVAL_SECONDS):
            logger.debug(
                f"Heartbeat: scheduler={scheduler.state}, "
                f"last_tick={scheduler.last_tick_at}, "
                f"consecutive_failures={scheduler.consecutive_failures}"
            )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        shutdown_event.set()

    logger.info("Shutting down scheduler...")
    scheduler.stop(timeout=SHUTDOWN_TIMEOUT_SECONDS)
    logger.info("Shutdown complete")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 on success)
    """
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.debug else logging.INFO
    setup_logging(log_level)

    try:
        if args.config:
            cfg = config_module.load_config(args.config)
            logger.debug(f"Configuration loaded from {args.config}")
        else:
            cfg = config_module.config_from_env()
    except config_module.ConfigError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        storage.init_storage(cfg.storage.data_dir)
    except MonitorError as e:
        logger.error(f"Failed to initialize storage: {e}")
        return 1

    probe_client = McStatusProbeClient()
    service = MonitorService.from_config(cfg, probe_client)

    try:
        if args.command == "run":
            scheduler = Scheduler(cfg.server, probe_client, service.history_store)
            return run_scheduler(scheduler)

        if args.command == "ping":
            result = service.probe_now(args.host, args.port)
            _print_json(result.to_dict())
            return 0 if result.online else 1

        if args.command == "import":
            try:
                payload = _read_payload(args.file)
            except OSError as e:
                print(f"ERROR: Cannot read {args.file}: {e}", file=sys.stderr)
                return 1
            _print_json(service.import_batch(payload).to_dict())
            return 0

        if args.command == "history":
            _print_json(service.get_history().to_dict())
        elif args.command == "stats":
            _print_json(service.get_stats().to_dict())
        elif args.command == "config":
            _print_json(service.get_config().to_dict())
        return 0

    except MonitorError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
