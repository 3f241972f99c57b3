# --- Standard library imports ---
import time
from typing import Callable

# --- Project imports ---
from .logger import get_logger
from .store import QUEUE_KEY
from .time_service import TimeService
from .notifier import send_with_retry
from .models import MessageCategory, QueuedMessage


QUEUE_CAPACITY = 50
FLUSH_PAUSE_S = 2

# Replayed on flush, in this order; everything else is dropped
FLUSH_ORDER = (MessageCategory.ALERT, MessageCategory.CRITICAL)


class MessageQueue:
    """
    Persisted buffer for notifications that could not be delivered.

    Invariants:
      - never holds more than `capacity` entries
      - eviction drops the oldest first; survivors keep chronological order
    """

    def __init__(self, store, capacity: int = QUEUE_CAPACITY, key: str = QUEUE_KEY):
        self.store = store
        self.capacity = capacity
        self.key = key
        self.logger = get_logger("message_queue")

    def messages(self) -> list[QueuedMessage]:
        raw = self.store.read(self.key, []) or []
        messages = []
        for item in raw:
            try:
                messages.append(QueuedMessage.from_dict(item))
            except (KeyError, TypeError, ValueError):
                self.logger.warning(f"Dropping unreadable queued message: {item!r}")
        return messages

    def __len__(self) -> int:
        return len(self.messages())

    def enqueue(self, message: QueuedMessage) -> None:
        messages = self.messages()
        messages.append(message)
        if len(messages) > self.capacity:
            self.logger.info(
                f"Queue size exceeded limit, trimming to last {self.capacity} entries"
            )
            messages = messages[-self.capacity:]
        self.store.write(self.key, [m.to_dict() for m in messages])

    def coalesce(self) -> list[QueuedMessage]:
        """
        Latest message per replayable category, in FLUSH_ORDER.

        START is never re-sent from the queue; TRYING and HEARTBEAT are
        dropped to control volume.
        """
        latest: dict[MessageCategory, QueuedMessage] = {}
        for message in self.messages():
            if message.category in FLUSH_ORDER:
                latest[message.category] = message
        return [latest[c] for c in FLUSH_ORDER if c in latest]

    def clear(self) -> None:
        self.store.delete(self.key)


class NotificationDispatcher:
    """
    Single entry point for notifications.

    Sends immediately when the notification channel is reachable (flushing
    anything queued first), otherwise queues for later delivery.
    """

    def __init__(
        self,
        notifier,
        queue: MessageQueue,
        channel_available: Callable[[], bool],
        max_length: int | None = 160,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        time_service: TimeService | None = None,
    ):
        self.notifier = notifier
        self.queue = queue
        self.channel_available = channel_available
        self.max_length = max_length
        self.clock = clock
        self.sleep = sleep
        self.time = time_service or TimeService()
        self.logger = get_logger("dispatcher")

    def build(self, category: MessageCategory, body: str) -> QueuedMessage:
        now = self.clock()
        return QueuedMessage(
            category=category,
            body=f"{self.time.from_epoch(now)} - {body}",
            enqueued_at=now,
        )

    def notify(self, category: MessageCategory, body: str) -> bool:
        """
        Returns:
            True if the message was delivered now, False if queued or failed.
        """
        message = self.build(category, body)

        if not self.channel_available():
            self.queue.enqueue(message)
            self.logger.info(f"Message queued for later delivery: {message.render()}")
            return False

        if len(self.queue):
            return self.flush(message)
        return self._send(message)

    def flush(self, trigger: QueuedMessage) -> bool:
        """
        Deliver the coalesced backlog followed by `trigger`.

        The queue is cleared afterwards even if some sends failed; queued
        messages are best-effort.

        Returns:
            Delivery result of `trigger`.
        """
        self.logger.info("Processing queued messages")
        try:
            for queued in self.queue.coalesce():
                self.logger.info(f"Sending queued {queued.category.value} message")
                self._send(queued)
                self.sleep(FLUSH_PAUSE_S)
            return self._send(trigger)
        finally:
            self.queue.clear()

    def _send(self, message: QueuedMessage) -> bool:
        return send_with_retry(
            self.notifier,
            message.render(),
            max_length=self.max_length,
            sleep=self.sleep,
        )
