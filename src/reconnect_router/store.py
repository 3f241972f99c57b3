# --- Standard library imports ---
import os
import json
import tempfile
from pathlib import Path
from typing import Any

# --- Project imports ---
from .logger import get_logger


logger = get_logger("store")

# --- Well-known keys ---
HEARTBEAT_KEY = "heartbeat"
LAST_RESTART_KEY = "last_iface_restart"
LAST_START_KEY = "last_start"
LAST_EXIT_KEY = "last_exit"
QUEUE_KEY = "sms_queue"


class FileStore:
    """
    Tiny key-value store: one JSON file per key under `directory`.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace(), so a concurrently starting instance never reads a
    partial value. Failure or corruption on read is treated as a miss.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str, default: Any = None) -> Any:
        try:
            return json.loads(self._path(key).read_text())
        except (FileNotFoundError, json.JSONDecodeError, OSError):
            return default

    def write(self, key: str, value: Any) -> bool:
        """
        Atomically replace `key`. Best-effort: returns False on I/O errors.
        """
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.directory, prefix=f".{key}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w") as fh:
                json.dump(value, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path(key))
            return True
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(f"Store write failed for {key!r} ({exc.__class__.__name__}: {exc})")
            if tmp_path:
                Path(tmp_path).unlink(missing_ok=True)
            return False

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(f"Store delete failed for {key!r} ({exc.__class__.__name__})")

    def writable(self) -> bool:
        """Probe the directory with a throwaway write."""
        probe_key = ".write_probe"
        ok = self.write(probe_key, True)
        self.delete(probe_key)
        return ok


class MemoryStore:
    """In-process store with the FileStore interface (tests, dry runs)."""

    def __init__(self, initial: dict | None = None):
        self.data: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.write(key, value)

    def read(self, key: str, default: Any = None) -> Any:
        if key not in self.data:
            return default
        return json.loads(self.data[key])

    def write(self, key: str, value: Any) -> bool:
        # Round-trip through JSON so values behave like persisted ones
        self.data[key] = json.dumps(value)
        return True

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def writable(self) -> bool:
        return True
