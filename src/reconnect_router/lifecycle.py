# --- Standard library imports ---
import os
import sys
import time
import fcntl
import signal
import atexit
from pathlib import Path
from typing import Callable

# --- Project imports ---
from .logger import get_logger
from .store import HEARTBEAT_KEY, LAST_EXIT_KEY, QUEUE_KEY


logger = get_logger("lifecycle")

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGHUP)


class SingletonLock:
    """
    Exclusive advisory lock (flock) on a well-known file.

    Acquired non-blockingly; the holder's PID is written into the file for
    operators. The kernel drops the lock if the process dies.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._fh = None

    @property
    def held(self) -> bool:
        return self._fh is not None

    def acquire(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fh = open(self.path, "a+")
        except OSError as e:
            logger.error(f"Could not open lock file {self.path} ({e.__class__.__name__})")
            return False

        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            fh.close()
            return False

        fh.seek(0)
        fh.truncate()
        fh.write(f"{os.getpid()}\n")
        fh.flush()
        self._fh = fh
        return True

    def release(self) -> None:
        if self._fh is None:
            return
        try:
            self.path.unlink(missing_ok=True)
            fcntl.flock(self._fh.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            logger.warning(f"Lock release failed ({e.__class__.__name__})")
        finally:
            self._fh.close()
            self._fh = None


class ShutdownHook:
    """
    Single cleanup routine for normal exit and SIGTERM / SIGINT / SIGHUP.

    Runs at most once no matter how many paths reach it:
    interface up → STOPPED heartbeat → clean-exit marker → scratch
    entries deleted → lock released.
    """

    def __init__(
        self,
        resetter,
        interface: str,
        store,
        lock: SingletonLock,
        heartbeat=None,
        clock: Callable[[], float] = time.time,
    ):
        self.resetter = resetter
        self.interface = interface
        self.store = store
        self.lock = lock
        self.heartbeat = heartbeat
        self.clock = clock
        self.done = False

    def install(self) -> None:
        atexit.register(self.run, "normal exit")
        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        self.run(f"signal {signal.Signals(signum).name}")
        sys.exit(0)

    def run(self, reason: str = "normal exit") -> None:
        if self.done:
            return
        self.done = True

        logger.info(f"Script stopped ({reason}). Ensuring interface is up...")
        try:
            if not self.resetter.bring_up(self.interface):
                logger.warning(f"Could not bring {self.interface} up during shutdown")

            if self.heartbeat is not None:
                self.heartbeat.stopped()

            self.store.write(LAST_EXIT_KEY, {"reason": reason, "at": self.clock()})
            for key in (QUEUE_KEY, HEARTBEAT_KEY):
                self.store.delete(key)
        finally:
            self.lock.release()
