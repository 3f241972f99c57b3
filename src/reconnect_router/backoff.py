# --- Project imports ---
from .logger import get_logger


# --- Backoff constants ---
BACKOFF_CAP_S = 600          # never sleep longer than 10 minutes between cycles
BACKOFF_THRESHOLD = 5        # failures tolerated at the base delay
MAX_BACKOFF_FAILURES = 10    # exponent bound


def backoff_delay(
    consecutive_failures: int,
    base_delay: float,
    cap: float = BACKOFF_CAP_S,
    threshold: int = BACKOFF_THRESHOLD,
    max_failures: int = MAX_BACKOFF_FAILURES,
) -> float:
    """
    Delay between outer monitoring cycles.

        failures <= threshold  → base_delay
        failures >  threshold  → base_delay * 2^(failures - threshold), capped

    Input is clamped to [0, max_failures] before use.
    """
    failures = min(max(consecutive_failures, 0), max_failures)
    if failures <= threshold:
        return min(base_delay, cap)
    return min(base_delay * 2 ** (failures - threshold), cap)


class BackoffPolicy:
    def __init__(self, base_delay: float, cap: float = BACKOFF_CAP_S):
        self.base_delay = base_delay
        self.cap = cap
        self.logger = get_logger("backoff")

    def delay(self, consecutive_failures: int) -> float:
        delay = backoff_delay(consecutive_failures, self.base_delay, self.cap)
        if delay > self.base_delay:
            self.logger.info(f"Using exponential backoff: {delay:.0f}s delay")
        return delay
