# --- Standard library imports ---
from enum import Enum, auto


class LinkVerdict(Enum):
    UP = auto()
    SUSPECT = auto()   # failing, debounce threshold not reached yet
    DOWN = auto()

class LinkFSM:
    """
    Tiny per-target debounce state machine.

    Invariants:
      - consec_fails increments only on failed probes
      - consec_fails resets only on a successful probe
      - Up → Down needs `threshold` consecutive failures; Down → Up needs one success
      - FSM performs no network I/O, it only reasons about results
    """

    def __init__(self, threshold: int = 2):
        self.threshold = threshold
        self.consec_fails = 0

    @property
    def verdict(self) -> LinkVerdict:
        if self.consec_fails == 0:
            return LinkVerdict.UP
        if self.consec_fails < self.threshold:
            return LinkVerdict.SUSPECT
        return LinkVerdict.DOWN

    def observe(self, reachable: bool) -> bool:
        """
        Apply one probe result.

        Returns:
            True exactly on the probe that crosses the debounce threshold.
        """
        if reachable:
            self.consec_fails = 0
            return False

        self.consec_fails += 1
        return self.consec_fails == self.threshold
