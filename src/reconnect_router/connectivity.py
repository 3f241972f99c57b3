# ─── Standard library imports ───
import time
from dataclasses import dataclass
from typing import Callable, Sequence

# ─── Project imports ───
from .logger import get_logger
from .link_fsm import LinkFSM, LinkVerdict
from .backoff import MAX_BACKOFF_FAILURES
from .recovery_policy import RecoveryPolicy
from .time_service import TimeService, format_duration, format_duration_compact
from .models import (
    ConnectivityState,
    MessageCategory,
    NetworkState,
    OutageEvent,
    OutageKind,
)


@dataclass
class OutageWindow:
    """An open outage: opened by a *_LOST event, closed by exactly one terminal event."""
    started_at: float
    alerted: bool = False


class ConnectivityMonitor:
    """
    Router / internet state machine and reconnection engine.

    Turns raw probe results into debounced outages, sequences interface
    resets, and makes sure every outage is closed by exactly one
    *_RESTORED or RECOVERY_FAILED event and one notification.

    Design principles:
    - Assume both targets up at startup
    - Single dropped probes are noise: no event, no notification
    - Router loss escalates to interface resets; internet-only loss waits
      and backs off, resetting only when it persists (rate limited)
    """

    def __init__(
        self,
        policy: RecoveryPolicy,
        prober,
        recovery,
        dispatcher,
        journal,
        router_ip: str,
        dns_hosts: Sequence[str],
        label: str = "Pi-hole",
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        time_service: TimeService | None = None,
    ):
        # ─── Dependencies / Configuration ───
        self.policy = policy
        self.prober = prober
        self.recovery = recovery
        self.dispatcher = dispatcher
        self.journal = journal
        self.router_ip = router_ip
        self.dns_hosts = tuple(dns_hosts)
        self.label = label
        self.clock = clock
        self.sleep = sleep
        self.time = time_service or TimeService()
        self.logger = get_logger("connectivity")

        # ─── Runtime State ───
        self.state = ConnectivityState()
        self.router_fsm = LinkFSM(policy.debounce_threshold)
        self.internet_fsm = LinkFSM(policy.debounce_threshold)

        # Set when a terminal outage event was written during the current check
        self.downtime_logged: bool = False

        self._router_outage: OutageWindow | None = None
        self._internet_outage: OutageWindow | None = None

        # (closed window, downtime) of a router outage closed by the latest probe
        self._router_recovery: tuple[OutageWindow, float] | None = None

        # Current reconnection attempt, None outside the sub-loop
        self._reconnect_attempt: int | None = None

        # Trips the fixed internet backoff; independent from the streak
        self._internet_backoff_count: int = 0

    # ──────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────

    def begin_cycle(self) -> None:
        """Reset the per-cycle "already logged" flag."""
        self.downtime_logged = False

    def probe_cycle(self) -> NetworkState:
        """
        One connectivity check: router first, DNS anchors only if the
        router answered. Updates reachability, outage windows and logs.
        """
        self.downtime_logged = False
        self._router_recovery = None

        router = self.prober.probe(self.router_ip)
        self._observe_router(router.reachable, self.clock())
        if not router.reachable:
            self.logger.warning(f"Cannot reach router at {self.router_ip}")
            return NetworkState.ROUTER_DOWN

        if self.prober.any_reachable(self.dns_hosts):
            self._internet_up(self.clock())
            return NetworkState.HEALTHY

        self._internet_down(self.clock())
        return NetworkState.WAN_DOWN

    def run_check(self) -> NetworkState:
        """
        Outer-cycle step: probe, then act on the verdict.

        Returns:
            The NetworkState observed by the initial probe.
        """
        state = self.state
        result = self.probe_cycle()

        if result is NetworkState.ROUTER_DOWN:
            state.consecutive_failures = min(
                state.consecutive_failures + 1, MAX_BACKOFF_FAILURES
            )
            if self.router_fsm.verdict is LinkVerdict.DOWN:
                self._open_router_outage()
                self._reconnect()
            else:
                self.logger.info(
                    f"Router probe failed ({self.router_fsm.consec_fails}/"
                    f"{self.router_fsm.threshold}), waiting for confirmation"
                )
            return result

        self._announce_router_recovery()

        if result is NetworkState.WAN_DOWN:
            state.consecutive_failures += 1
            self.logger.info(
                f"Can reach router but not internet. Attempt "
                f"{state.consecutive_failures} - waiting to retry"
            )
            self._maybe_reset_for_internet()
        else:
            state.consecutive_failures = 0

        return result

    # ──────────────────────────────────────────────────────────────
    # Router
    # ──────────────────────────────────────────────────────────────

    def _observe_router(self, reachable: bool, now: float) -> None:
        state = self.state
        self.router_fsm.observe(reachable)
        state.consecutive_router_failures = self.router_fsm.consec_fails

        if not reachable:
            if state.router_reachable:
                state.router_reachable = False
                state.router_down_since = now
            return

        if state.router_reachable:
            return

        downtime = now - state.router_down_since
        state.router_reachable = True
        state.router_down_since = None

        window = self._router_outage
        if window is None:
            self.logger.info(
                f"Router answered again after a single missed probe ({format_duration(downtime)})"
            )
            return

        self._router_outage = None
        self._router_recovery = (window, downtime)
        self.logger.info(
            f"Router connectivity restored after {format_duration(downtime)} of downtime"
        )
        if self._reconnect_attempt is not None:
            detail = f"{self._reconnect_attempt} attempts needed"
        else:
            detail = "Router outage"
        self._record(OutageKind.ROUTER_RESTORED, window.started_at, downtime, detail)

    def _open_router_outage(self) -> None:
        if self._router_outage is not None:
            return

        started_at = self.state.router_down_since or self.clock()
        self._router_outage = OutageWindow(started_at=started_at, alerted=True)
        down_time = self.time.from_epoch(started_at)

        self.logger.warning(f"Network connectivity lost at {down_time}")
        self._record(OutageKind.ROUTER_LOST, started_at, None, "Starting recovery attempts")
        self.dispatcher.notify(
            MessageCategory.ALERT, f"{self.label} Disconnected at {down_time}"
        )

    def _reconnect(self) -> bool:
        """
        Reconnection sub-loop: reset the interface and re-probe, up to
        MAX_RETRIES times.

        Returns:
            True if the router became reachable.
        """
        policy = self.policy
        window = self._router_outage

        try:
            for attempt in range(1, policy.max_retries + 1):
                self._reconnect_attempt = attempt
                if self._attempt_reconnect(attempt):
                    return True
        finally:
            self._reconnect_attempt = None

        self._recovery_failed(window)
        return False

    def _attempt_reconnect(self, attempt: int) -> bool:
        """One reset-and-reprobe step of the sub-loop."""
        policy = self.policy
        self.logger.info(f"Reconnection attempt {attempt} of {policy.max_retries}")

        if attempt % policy.trying_notify_every == 0:
            self.dispatcher.notify(
                MessageCategory.TRYING,
                f"{self.label} reconnection attempt {attempt} of {policy.max_retries}",
            )

        self.recovery.reset_interface(
            reason=f"attempt {attempt}/{policy.max_retries}"
        )

        # A reachable router here always closes the window in _observe_router()
        if self.probe_cycle() is not NetworkState.ROUTER_DOWN:
            _, downtime = self._router_recovery
            self._router_recovery = None

            self.dispatcher.notify(
                MessageCategory.OK,
                f"{self.label} Online! Down: {format_duration_compact(downtime)}. "
                f"{attempt}/{policy.max_retries} attempts",
            )
            self.state.consecutive_failures = 0
            return True

        if attempt < policy.max_retries:
            self.logger.info(
                f"Reconnection attempt failed, waiting {policy.retry_delay_s} seconds"
            )
            self.sleep(policy.retry_delay_s)
        return False

    def _recovery_failed(self, window: OutageWindow) -> None:
        policy = self.policy
        now = self.clock()
        downtime = now - window.started_at

        self.logger.error(
            f"Failed to restore connection after {policy.max_retries} attempts; "
            f"total downtime so far: {format_duration(downtime)}"
        )
        self._record(
            OutageKind.RECOVERY_FAILED,
            window.started_at,
            downtime,
            f"All {policy.max_retries} attempts failed",
        )
        self.dispatcher.notify(
            MessageCategory.CRITICAL,
            f"{self.label} recovery failed! Manual intervention required. "
            f"Down since {self.time.from_epoch(window.started_at)} "
            f"({format_duration_compact(downtime)}), "
            f"all {policy.max_retries} attempts failed",
        )

        # Next cycle retries immediately at base delay instead of idling
        self.state.consecutive_failures = 1

        # The router is still down: keep a (silent) window open so the
        # eventual recovery is reported once, measured from the first failure
        self._router_outage = OutageWindow(started_at=window.started_at, alerted=True)
        self._record(
            OutageKind.ROUTER_LOST,
            window.started_at,
            None,
            "Outage continues after failed recovery",
        )

    def _announce_router_recovery(self) -> None:
        """Router came back on an outer-cycle probe (after a failed recovery)."""
        if self._router_recovery is None:
            return

        window, downtime = self._router_recovery
        self._router_recovery = None
        if window.alerted:
            self.dispatcher.notify(
                MessageCategory.OK,
                f"{self.label} Online! Down: {format_duration_compact(downtime)}. "
                f"Recovered after failed recovery attempts",
            )

    # ──────────────────────────────────────────────────────────────
    # Internet (router reachable)
    # ──────────────────────────────────────────────────────────────

    def _internet_down(self, now: float) -> None:
        state = self.state
        policy = self.policy

        crossed = self.internet_fsm.observe(False)
        state.consecutive_internet_failures = self.internet_fsm.consec_fails
        if state.internet_reachable:
            state.internet_reachable = False
            state.internet_down_since = now

        self.logger.warning(
            f"Can reach router but cannot reach internet "
            f"(none of: {' '.join(self.dns_hosts)} responded)"
        )

        if crossed and self._internet_outage is None:
            self._internet_outage = OutageWindow(started_at=state.internet_down_since)
            self._record(
                OutageKind.INTERNET_LOST,
                state.internet_down_since,
                None,
                "Router reachable, no DNS anchor responded",
            )

        window = self._internet_outage
        if (
            window is not None
            and not window.alerted
            and state.consecutive_internet_failures >= policy.sms_internet_failure_threshold
        ):
            window.alerted = True
            self.dispatcher.notify(
                MessageCategory.ALERT,
                f"{self.label} has no internet despite router access. "
                f"{state.consecutive_internet_failures} consecutive failures.",
            )

        self._internet_backoff_count += 1
        if self._internet_backoff_count >= policy.max_internet_failures:
            self.logger.warning(
                f"Internet unreachable for {policy.max_internet_failures} attempts, "
                f"backing off {policy.internet_backoff_s}s"
            )
            self.sleep(policy.internet_backoff_s)
            self._internet_backoff_count = 0

    def _internet_up(self, now: float) -> None:
        state = self.state
        self.internet_fsm.observe(True)
        state.consecutive_internet_failures = 0
        self._internet_backoff_count = 0

        if state.internet_reachable:
            return

        downtime = now - state.internet_down_since
        state.internet_reachable = True
        state.internet_down_since = None

        window = self._internet_outage
        self._internet_outage = None
        if window is None:
            self.logger.info(
                f"Internet answered again after a single missed probe ({format_duration(downtime)})"
            )
            return

        self.logger.info(
            f"Internet connectivity restored after {format_duration(downtime)} of downtime"
        )
        self._record(
            OutageKind.INTERNET_RESTORED,
            window.started_at,
            downtime,
            "Internet-only outage (router was reachable)",
        )
        if window.alerted:
            self.dispatcher.notify(
                MessageCategory.OK,
                f"{self.label} internet restored. Down: {format_duration_compact(downtime)}",
            )

    def _maybe_reset_for_internet(self) -> None:
        failures = self.state.consecutive_failures
        floor = self.policy.persistent_failure_floor
        if failures > floor and failures % floor == 0:
            self.logger.warning(
                "Persistent internet connectivity issues - attempting network restart"
            )
            self.recovery.maybe_reset(reason=f"internet down {failures} cycles")

    # ──────────────────────────────────────────────────────────────
    # Event helpers
    # ──────────────────────────────────────────────────────────────

    def _record(
        self,
        kind: OutageKind,
        started_at: float,
        duration: float | None,
        detail: str,
    ) -> None:
        self.journal.record(OutageEvent(kind, started_at, duration, detail))
        if kind.closes_outage:
            self.downtime_logged = True
