# ─── Standard library imports ───
import time
from typing import Callable

# ─── Project imports ───
from .logger import get_logger, tlog
from .store import LAST_RESTART_KEY
from .recovery_policy import RecoveryPolicy


class RecoveryController:
    """
    Interface reset orchestrator.

    Responsibilities:
    • Execute interface resets on behalf of the state machine
    • Persist the last-reset timestamp so the cooldown survives restarts
    • Enforce the RESTART_INTERVAL floor for WAN-triggered resets

    Non-responsibilities:
    • No reachability decisions
    • No notifications
    """

    def __init__(
        self,
        policy: RecoveryPolicy,
        resetter,
        interface: str,
        store,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        # ─── Dependencies / Configuration ───
        self.policy = policy
        self.resetter = resetter
        self.interface = interface
        self.store = store
        self.clock = clock
        self.sleep = sleep
        self.logger = get_logger("recovery_controller")

    @property
    def last_reset_time(self) -> float:
        """Epoch of the last reset (0 → never, first reset allowed immediately)."""
        try:
            return float(self.store.read(LAST_RESTART_KEY, 0) or 0)
        except (TypeError, ValueError):
            return 0.0

    def reset_interface(self, reason: str) -> bool:
        """
        Reset the interface unconditionally (reconnection sub-loop path).
        """
        now = self.clock()
        self.store.write(LAST_RESTART_KEY, now)

        tlog(
            self.logger,
            "🔴",
            "RECOVERY",
            "TRIGGER",
            primary=f"restart {self.interface}",
            meta=reason,
        )

        success = self.resetter.reset(self.interface)

        tlog(
            self.logger,
            "🟢" if success else "🔴",
            "RECOVERY",
            "COMPLETE" if success else "FAILED",
            primary=f"restart {self.interface}",
        )
        return success

    def maybe_reset(self, reason: str) -> bool:
        """
        Reset only if RESTART_INTERVAL elapsed since the last reset.

        A suppressed reset waits one RETRY_DELAY so the caller does not
        tight-loop.

        Returns:
            True if a reset was executed (regardless of its outcome).
        """
        since_last = self.clock() - self.last_reset_time

        if since_last < self.policy.restart_interval_s:
            self._emit_suppressed(
                "cooldown active",
                meta=f"last_reset={int(since_last)}s | window={self.policy.restart_interval_s}s",
            )
            self.sleep(self.policy.retry_delay_s)
            return False

        self.reset_interface(reason)
        return True

    # ──────────────────────────────────────────────────────────────
    # Telemetry helpers
    # ──────────────────────────────────────────────────────────────

    def _emit_suppressed(self, reason: str, meta: str | None = None) -> None:
        tlog(
            self.logger,
            "🟡",
            "RECOVERY",
            "SUPPRESSED",
            primary=reason,
            meta=meta,
        )
