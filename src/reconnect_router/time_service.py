# --- Standard library imports ---
import os
from zoneinfo import ZoneInfo
from datetime import datetime


class TimeService:
    """
    Timezone-aware wall clock formatting.

    - TZ loaded once during class initialization
    - Provides:
        * format_local()
        * from_epoch()
    """

    def __init__(self):
        tz_name = os.getenv("TZ", "UTC")
        try:
            self.tz = ZoneInfo(tz_name)
        except Exception:
            self.tz = ZoneInfo("UTC")

    # -------------------------
    # Wall clock utilities
    # -------------------------

    def format_local(self, dt: datetime) -> str:
        """Format a datetime the way log lines and notifications print it."""
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    def from_epoch(self, ts: float) -> str:
        """Render an epoch timestamp in local time."""
        return self.format_local(datetime.fromtimestamp(ts, self.tz))


# -------------------------------
# Duration rendering
# -------------------------------

def format_duration(seconds: float | None) -> str:
    """'4m 7s' style used in downtime log lines ('N/A' when unknown)."""
    if seconds is None:
        return "N/A"
    total = max(0, int(seconds))
    return f"{total // 60}m {total % 60}s"

def format_duration_compact(seconds: float) -> str:
    """'4m7s' style for length-limited notifications."""
    total = max(0, int(seconds))
    return f"{total // 60}m{total % 60}s"

def format_duration_hms(seconds: float) -> str:
    """'2h 5m 0s' style for long gaps (heartbeat)."""
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours}h {minutes}m {secs}s"
