import pytest

from reconnect_router.logger import setup_logging
from reconnect_router.models import ProbeResult
from reconnect_router.store import MemoryStore
from reconnect_router.events import EventJournal
from reconnect_router.recovery_policy import RecoveryPolicy
from reconnect_router.recovery_controller import RecoveryController
from reconnect_router.connectivity import ConnectivityMonitor


ROUTER_IP = "192.168.1.1"
DNS_HOSTS = ("1.1.1.1", "1.0.0.1")
START_TS = 1_760_000_000.0


# =====
# FAKES
# =====

class FakeClock:
    """Wall clock that only moves when something sleeps (or a test advances it)."""

    def __init__(self, start: float = START_TS):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProber:
    """
    Replays per-address reachability scripts.

    Each script is consumed one probe at a time; the last value repeats.
    Unknown addresses are reachable.
    """

    def __init__(self, scripts: dict[str, list[bool]] | None = None):
        self.scripts = {k: list(v) for k, v in (scripts or {}).items()}
        self.calls: list[str] = []

    def set(self, address: str, results: list[bool]) -> None:
        self.scripts[address] = list(results)

    def probe(self, address: str) -> ProbeResult:
        self.calls.append(address)
        script = self.scripts.get(address)
        if not script:
            return ProbeResult(address, True)
        reachable = script.pop(0) if len(script) > 1 else script[0]
        return ProbeResult(address, reachable, 0.01 if reachable else None)

    def any_reachable(self, addresses) -> bool:
        return any(self.probe(a).reachable for a in addresses)


class FakeResetter:
    def __init__(self, result: bool = True, on_reset=None):
        self.result = result
        self.on_reset = on_reset
        self.resets: list[str] = []
        self.brought_up: list[str] = []

    def reset(self, interface: str) -> bool:
        self.resets.append(interface)
        if self.on_reset:
            self.on_reset(len(self.resets))
        return self.result

    def bring_up(self, interface: str) -> bool:
        self.brought_up.append(interface)
        return True

    def exists(self, interface: str) -> bool:
        return True

    def list_interfaces(self) -> list[str]:
        return ["lo", "wlan0"]

    def detect_dhcp_client(self) -> str | None:
        return "dhclient"


class RecordingNotifier:
    """Transport double; `results` is consumed per delivery (last value repeats)."""

    def __init__(self, results: list[bool] | None = None):
        self.results = list(results or [True])
        self.sent: list[str] = []
        self.attempts = 0

    def deliver(self, text: str) -> bool:
        self.attempts += 1
        ok = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if ok:
            self.sent.append(text)
        return ok


class RecordingDispatcher:
    def __init__(self):
        self.sent: list[tuple] = []

    def notify(self, category, body: str) -> bool:
        self.sent.append((category, body))
        return True

    def categories(self) -> list:
        return [category for category, _ in self.sent]


# ========
# FIXTURES
# ========

@pytest.fixture(autouse=True)
def configure_logging():
    setup_logging()
    yield   # allow test to run


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def store():
    return MemoryStore()

@pytest.fixture
def prober():
    return ScriptedProber()

@pytest.fixture
def resetter():
    return FakeResetter()

@pytest.fixture
def dispatcher():
    return RecordingDispatcher()

@pytest.fixture
def journal():
    return EventJournal()

@pytest.fixture
def policy():
    return RecoveryPolicy(
        max_retries=5,
        retry_delay_s=15,
        restart_interval_s=180,
        max_internet_failures=5,
        sms_internet_failure_threshold=10,
    )

@pytest.fixture
def make_monitor(policy, prober, resetter, dispatcher, journal, store, clock):
    """Build a ConnectivityMonitor wired to fakes; keyword overrides allowed."""

    def _make(**overrides) -> ConnectivityMonitor:
        active_policy = overrides.get("policy", policy)
        recovery = RecoveryController(
            active_policy,
            overrides.get("resetter", resetter),
            "wlan0",
            store,
            clock=clock,
            sleep=clock.sleep,
        )
        return ConnectivityMonitor(
            active_policy,
            overrides.get("prober", prober),
            recovery,
            overrides.get("dispatcher", dispatcher),
            journal,
            router_ip=ROUTER_IP,
            dns_hosts=DNS_HOSTS,
            clock=clock,
            sleep=clock.sleep,
        )

    return _make
