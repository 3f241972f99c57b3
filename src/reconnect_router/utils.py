# --- Standard library imports ---
import time
import socket
import subprocess
from typing import Callable, TypeVar

# --- Project imports ---
from .logger import get_logger
from .models import ProbeResult


# Define the logger once for the entire module
logger = get_logger("utils")

T = TypeVar("T")

def ping_host(
    address: str,
    count: int = 2,
    timeout: int = 3,
    size: int = 32,
) -> ProbeResult:
    """
    Check host reachability with ICMP echo (`ping`).

    Conceptually, this function helps distinguish:
      - LAN health (router reachability)
      - WAN health (external routing)

    Args:
        address: IPv4 address or hostname to check.
        count: Echo requests to send (-c).
        timeout: Per-reply wait in seconds (-W).
        size: Payload size in bytes (-s).

    Returns:
        ProbeResult with reachable=True if at least one reply arrived.
    """
    cmd = ["ping", "-s", str(size), "-c", str(count), "-W", str(timeout), address]
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            # Hard upper bound; ping should exit well before this
            timeout=count * timeout + 2,
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"ping {address} timed out")
        return ProbeResult(target=address, reachable=False)
    except OSError as e:
        logger.warning(f"ping {address} could not run ({e.__class__.__name__})")
        return ProbeResult(target=address, reachable=False)

    reachable = result.returncode == 0
    latency = time.monotonic() - start if reachable else None
    return ProbeResult(target=address, reachable=reachable, latency=latency)

def is_valid_ip(ip: str | None) -> bool:
    """
    Validate an IPv4 address using socket.

    Args:
        ip: IPv4 address string to validate.

    Returns:
        True if the IPv4 address is valid, False otherwise.
    """

    if not ip:
        return False
    try:
        socket.inet_pton(socket.AF_INET, ip)
        return True
    except (socket.error, TypeError):
        return False

def retry_call(
    operation: Callable[[], T],
    attempts: int,
    pause: float,
    label: str,
    sleep: Callable[[float], None] = time.sleep,
    succeeded: Callable[[T], bool] = bool,
) -> tuple[T | None, int]:
    """
    Run `operation` up to `attempts` times with a fixed pause in between.

    Notification delivery (`notifier.send_with_retry`) is the caller. No
    pause after the final attempt.

    Returns:
        (last result, attempts used). The result is None only if attempts < 1.
    """
    result = None
    for attempt in range(1, attempts + 1):
        result = operation()
        if succeeded(result):
            return result, attempt
        if attempt < attempts:
            logger.info(f"{label} attempt {attempt} failed, retrying...")
            sleep(pause)
    return result, max(attempts, 0)

# ============================================================
# Performance Timing Utilities (optional instrumentation)
# ============================================================

class Timer:
    def __init__(self, logger):
        self.logger = logger
        self.cycle_start = None
        self.lap_start = None

    def start_cycle(self):
        """Call once at the beginning of a run cycle."""
        now = time.perf_counter()  # Recommended clock for benchmarking
        self.cycle_start = now
        self.lap_start = now

    def lap(self, label: str):
        """Measure time since last lap."""
        if self.lap_start is None:
            return

        now = time.perf_counter()
        delta_ms = (now - self.lap_start) * 1000
        self.logger.timing(f"Timing | {label:<34} [{delta_ms:8.1f} ms]")
        self.lap_start = now

    def end_cycle(self):
        """End-to-end duration."""
        if self.cycle_start is None:
            return
        total_ms = (time.perf_counter() - self.cycle_start) * 1000
        self.logger.timing(f"Timing | {'Total run_check()':<34} [{total_ms:8.1f} ms]")
        self.cycle_start = None
        self.lap_start = None
