# ─── Standard library imports ───
import time
from typing import Callable

# ─── Project imports ───
from .logger import get_logger
from .store import HEARTBEAT_KEY
from .time_service import TimeService, format_duration_hms
from .models import (
    HeartbeatRecord,
    HeartbeatStatus,
    MessageCategory,
    OutageEvent,
    OutageKind,
)


class HeartbeatMonitor:
    """
    Detects that the watchdog itself was not running (crash, suspend, host
    downtime) by comparing wall clock time against a persisted `last_beat`.

    `check()` is throttled by the main loop (once per minute); it only
    rewrites `last_beat` once a full interval has elapsed, so a gap of
    `interval * missed_threshold` or more can only mean nobody was running.
    """

    def __init__(
        self,
        store,
        dispatcher,
        journal,
        interval_s: int = 3600,
        missed_threshold: int = 3,
        enabled: bool = True,
        label: str = "Pi-hole",
        clock: Callable[[], float] = time.time,
        time_service: TimeService | None = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.journal = journal
        self.interval_s = interval_s
        self.missed_threshold = missed_threshold
        self.enabled = enabled
        self.label = label
        self.clock = clock
        self.time = time_service or TimeService()
        self.logger = get_logger("heartbeat_monitor")

    # ─── Persistence ───

    def load(self) -> HeartbeatRecord | None:
        raw = self.store.read(HEARTBEAT_KEY)
        if raw is None:
            return None
        try:
            return HeartbeatRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            self.logger.warning(f"Unreadable heartbeat record {raw!r}; reinitializing")
            return None

    def _beat(self, now: float) -> None:
        if not self.store.write(HEARTBEAT_KEY, HeartbeatRecord(last_beat=now).to_dict()):
            self.logger.warning("Could not persist heartbeat")

    # ─── Lifecycle records ───

    def initialize(self) -> bool:
        """Startup: create the record if missing (no notification). True if created."""
        if not self.enabled or self.load() is not None:
            return False
        self._beat(self.clock())
        self.journal.heartbeat("INITIALIZED", "Startup initialization")
        return True

    def started(self) -> None:
        self.journal.heartbeat("STARTED", "Monitoring initialization")

    def stopped(self) -> None:
        self.journal.heartbeat("STOPPED", "Script terminated")

    # ─── Periodic check ───

    def check(self) -> HeartbeatStatus:
        if not self.enabled:
            return HeartbeatStatus.DISABLED

        now = self.clock()
        record = self.load()
        if record is None:
            self._beat(now)
            self.journal.heartbeat("INITIALIZED", "First run")
            return HeartbeatStatus.INITIALIZED

        elapsed = now - record.last_beat
        if elapsed < self.interval_s:
            return HeartbeatStatus.TOO_SOON

        if elapsed >= self.interval_s * self.missed_threshold:
            status = self._missed(record.last_beat, elapsed)
        else:
            self.journal.heartbeat("NORMAL", f"{int(elapsed)}s since last heartbeat")
            status = HeartbeatStatus.NORMAL

        self._beat(now)
        return status

    def _missed(self, last_beat: float, elapsed: float) -> HeartbeatStatus:
        gap = format_duration_hms(elapsed)
        down_time = self.time.from_epoch(last_beat)
        self.logger.warning(f"Missed heartbeats: watchdog was not running for {gap}")

        self.journal.heartbeat("MISSED", f"{gap} ({int(elapsed)}s)")
        self.journal.record(OutageEvent(
            kind=OutageKind.SCRIPT_INTERRUPTED,
            started_at=last_beat,
            duration=elapsed,
            detail="Detected via missed heartbeats",
        ))
        self.dispatcher.notify(
            MessageCategory.ALERT,
            f"{self.label} back online! Down: {gap.replace(' ', '')} ({down_time} to now)",
        )
        return HeartbeatStatus.MISSED
