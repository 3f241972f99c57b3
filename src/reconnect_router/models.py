# ─── Future imports ───
from __future__ import annotations

# ─── Standard library imports ───
from enum import Enum, auto
from dataclasses import dataclass, asdict


class NetworkState(Enum):
    """Outcome of a single connectivity check."""
    UNKNOWN = auto()
    HEALTHY = auto()
    ROUTER_DOWN = auto()
    WAN_DOWN = auto()
    ERROR = auto()

    @property
    def label(self) -> str:
        return _NETWORK_STATE_LABELS[self]

_NETWORK_STATE_LABELS = {
    NetworkState.UNKNOWN: "unknown",
    NetworkState.HEALTHY: "router + internet reachable",
    NetworkState.ROUTER_DOWN: "router unreachable",
    NetworkState.WAN_DOWN: "router ok, internet unreachable",
    NetworkState.ERROR: "check failed",
}


@dataclass
class ConnectivityState:
    """
    Router / internet reachability as last observed by the state machine.

    Invariants:
      - router_down_since is set iff router_reachable is False
      - internet_down_since is set iff internet_reachable is False
      - *_down_since holds the FIRST failed observation of the current streak
    """
    router_reachable: bool = True
    internet_reachable: bool = True
    router_down_since: float | None = None
    internet_down_since: float | None = None
    consecutive_router_failures: int = 0
    consecutive_internet_failures: int = 0
    # Shared outer-cycle counter (drives backoff + persistent WAN resets)
    consecutive_failures: int = 0


@dataclass(frozen=True)
class ProbeResult:
    target: str
    reachable: bool
    latency: float | None = None


class OutageKind(Enum):
    ROUTER_LOST = "ROUTER_LOST"
    ROUTER_RESTORED = "ROUTER_RESTORED"
    INTERNET_LOST = "INTERNET_LOST"
    INTERNET_RESTORED = "INTERNET_RESTORED"
    SCRIPT_INTERRUPTED = "SCRIPT_INTERRUPTED"
    RECOVERY_FAILED = "RECOVERY_FAILED"

    @property
    def closes_outage(self) -> bool:
        return self in (
            OutageKind.ROUTER_RESTORED,
            OutageKind.INTERNET_RESTORED,
            OutageKind.RECOVERY_FAILED,
        )


@dataclass(frozen=True)
class OutageEvent:
    kind: OutageKind
    started_at: float
    duration: float | None = None
    detail: str = ""


class MessageCategory(Enum):
    START = "START"
    ALERT = "ALERT"
    TRYING = "TRYING"
    OK = "OK"
    CRITICAL = "CRITICAL"
    HEARTBEAT = "HEARTBEAT"


@dataclass(frozen=True)
class QueuedMessage:
    category: MessageCategory
    body: str
    enqueued_at: float

    def render(self) -> str:
        return f"[{self.category.value}] {self.body}"

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "body": self.body,
            "enqueued_at": self.enqueued_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> QueuedMessage:
        return cls(
            category=MessageCategory(data["category"]),
            body=str(data["body"]),
            enqueued_at=float(data["enqueued_at"]),
        )


@dataclass(frozen=True)
class HeartbeatRecord:
    last_beat: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> HeartbeatRecord:
        return cls(last_beat=float(data["last_beat"]))


class HeartbeatStatus(Enum):
    DISABLED = auto()
    INITIALIZED = auto()
    TOO_SOON = auto()
    NORMAL = auto()
    MISSED = auto()
