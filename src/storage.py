"""JSON file persistence primitives.

Every persisted resource is a single JSON document that is rewritten in
full. Writes go to a temp file first and are moved into place with
os.replace(), so readers never observe a partially written file. Mutating
read-modify-write sequences are serialized with one lock per file path.
"""

import json
import logging
import os
import threading
from typing import Any, Dict

from errors import StorageReadError, StorageWriteError
from models import format_timestamp, utc_now

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "ping-history.json"
STATS_FILENAME = "stats.json"

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def resource_lock(path: str) -> threading.Lock:
    """Return the process-wide writer lock for a persisted file.

    Two stores pointed at the same file share the same lock.
    """
    key = os.path.abspath(path)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


def read_json(path: str) -> Any:
    """Read and parse a persisted JSON document.

    Raises:
        StorageReadError: If the file is missing, unreadable or not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise StorageReadError(f"Persisted file not found: {path}", path=path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise StorageReadError(f"Failed to read {path}: {e}", path=path) from e
    except json.JSONDecodeError as e:
        raise StorageReadError(f"Corrupt JSON in {path}: {e}", path=path) from e


def write_json_atomic(path: str, data: Any) -> None:
    """Write a JSON document atomically.

    Writes to a temp file first, then uses os.replace() for atomic rename.
    On failure the previous content of ``path`` is left untouched.

    Raises:
        StorageWriteError: If the document cannot be serialized or written
    """
    tmp_path = f"{path}.tmp"

    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        # Clean up temp file on error
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass
        raise StorageWriteError(f"Failed to write {path}: {e}", path=path) from e


def init_storage(data_dir: str) -> None:
    """Create the data directory and empty persisted files if absent.

    Existing files are never overwritten.

    Args:
        data_dir: Directory holding the history and statistics files

    Raises:
        StorageWriteError: If the directory or a default file cannot be created
    """
    try:
        os.makedirs(data_dir, exist_ok=True)
    except OSError as e:
        raise StorageWriteError(f"Failed to create data directory {data_dir}: {e}", path=data_dir) from e

    defaults = {
        HISTORY_FILENAME: lambda: {"samples": []},
        STATS_FILENAME: lambda: {"players": {}, "updatedAt": format_timestamp(utc_now())},
    }
    for filename, make_default in defaults.items():
        path = os.path.join(data_dir, filename)
        with resource_lock(path):
            if os.path.exists(path):
                continue
            write_json_atomic(path, make_default())
            logger.info(f"Initialized {path}")
