# --- Standard library imports ---
import logging
from collections import deque

# --- Project imports ---
from .logger import get_logger, DOWNTIME_LOGGER, HEARTBEAT_LOGGER
from .models import OutageEvent
from .time_service import format_duration


RECENT_RECORDS = 100


class EventJournal:
    """
    Append-only record of outage and heartbeat events.

    Outage events go to the downtime log and are mirrored to the events log;
    heartbeat events go to the heartbeat log only. `events` and
    `heartbeats` keep only the most recent `RECENT_RECORDS` entries; the
    log files are the durable record.
    """

    def __init__(
        self,
        downtime_logger: logging.Logger | None = None,
        heartbeat_logger: logging.Logger | None = None,
        recent: int = RECENT_RECORDS,
    ):
        self.downtime_logger = downtime_logger or get_logger(DOWNTIME_LOGGER)
        self.heartbeat_logger = heartbeat_logger or get_logger(HEARTBEAT_LOGGER)
        self.logger = get_logger("events")
        self.events: deque[OutageEvent] = deque(maxlen=recent)
        self.heartbeats: deque[tuple[str, str]] = deque(maxlen=recent)

    def record(self, event: OutageEvent) -> OutageEvent:
        self.events.append(event)
        line = f"{event.kind.value} | {format_duration(event.duration)} | {event.detail}"
        self.downtime_logger.info(line)
        self.logger.info(f"Downtime event: {line}")
        return event

    def heartbeat(self, status: str, detail: str) -> None:
        self.heartbeats.append((status, detail))
        self.heartbeat_logger.info(f"HEARTBEAT | {status} | {detail}")
