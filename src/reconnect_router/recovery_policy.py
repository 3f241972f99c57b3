# ─── Future imports ───
from __future__ import annotations

# ─── Standard library imports ───
from dataclasses import dataclass


@dataclass(frozen=True)
class RecoveryPolicy:
    """
    Policy governing debounce, escalation and interface resets.

    This class encodes *intent* and *risk tolerance*, not interface wiring.
    Defaults mirror a Raspberry Pi on Wi-Fi behind a consumer router.
    """

    # ─── Reconnection sub-loop ───

    # Interface reset attempts per router outage
    max_retries: int = 10

    # Fixed pause between reconnection attempts; also the base outer-cycle delay
    retry_delay_s: int = 15

    # Emit a TRYING notification on every Nth attempt
    trying_notify_every: int = 3

    # ─── Debounce ───

    # Consecutive failed probes before Up -> Down is real
    debounce_threshold: int = 2

    # ─── Internet-only degradation ───

    max_internet_failures: int = 5
    sms_internet_failure_threshold: int = 10
    internet_backoff_multiplier: int = 5

    # Shared-counter floor / cadence for WAN-only interface resets
    persistent_failure_floor: int = 5

    # ─── Reset guardrails ───

    # Minimum spacing between WAN-triggered interface resets (persisted)
    restart_interval_s: int = 180

    # ─── Derived policy values (computed) ───

    @property
    def internet_backoff_s(self) -> int:
        """Extra sleep applied each time the internet backoff counter trips."""
        return self.retry_delay_s * self.internet_backoff_multiplier

    @classmethod
    def from_config(cls, config) -> RecoveryPolicy:
        recovery = config.Recovery
        return cls(
            max_retries=recovery.MAX_RETRIES,
            retry_delay_s=recovery.RETRY_DELAY,
            restart_interval_s=recovery.RESTART_INTERVAL,
            max_internet_failures=recovery.MAX_INTERNET_FAILURES,
            sms_internet_failure_threshold=recovery.SMS_INTERNET_FAILURE_THRESHOLD,
        )

    # ─── Introspection / debugging helpers ───────────────────────────────

    def summary(self) -> dict[str, int]:
        """
        Return a structured summary of the effective policy values.
        Useful for logs and startup diagnostics.
        """
        return {
            "max_retries": self.max_retries,
            "retry_delay_s": self.retry_delay_s,
            "debounce_threshold": self.debounce_threshold,
            "max_internet_failures": self.max_internet_failures,
            "sms_internet_failure_threshold": self.sms_internet_failure_threshold,
            "internet_backoff_s": self.internet_backoff_s,
            "restart_interval_s": self.restart_interval_s,
        }
