# --- Standard library imports ---
from typing import Iterable

# --- Project imports ---
from .logger import get_logger
from .models import ProbeResult
from .utils import ping_host


class Prober:
    """
    ICMP reachability checks with fixed probe parameters.

    One instance serves the router, the DNS anchors and the notification
    channel check; the three can diverge (e.g. router down while an old
    alert is still queued).
    """

    def __init__(self, count: int, timeout: int, size: int):
        self.count = count
        self.timeout = timeout
        self.size = size
        self.logger = get_logger("prober")

    def probe(self, address: str) -> ProbeResult:
        result = ping_host(address, self.count, self.timeout, self.size)
        self.logger.debug(
            f"probe {address}: {'up' if result.reachable else 'down'}"
            + (f" ({result.latency * 1000:.0f} ms)" if result.latency is not None else "")
        )
        return result

    def any_reachable(self, addresses: Iterable[str]) -> bool:
        """True as soon as one address answers (short-circuits)."""
        return any(self.probe(address).reachable for address in addresses)
