import pytest

from reconnect_router.store import MemoryStore, QUEUE_KEY
from reconnect_router.models import MessageCategory, QueuedMessage
from reconnect_router.message_queue import (
    FLUSH_PAUSE_S,
    MessageQueue,
    NotificationDispatcher,
)

from conftest import RecordingNotifier


def msg(category: MessageCategory, body: str, at: float = 0.0) -> QueuedMessage:
    return QueuedMessage(category=category, body=body, enqueued_at=at)


# ========
# FIXTURES
# ========

@pytest.fixture
def queue(store):
    return MessageQueue(store)

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest.fixture
def channel():
    return {"up": True}

@pytest.fixture
def make_dispatcher(queue, notifier, channel, clock):
    def _make(**overrides):
        return NotificationDispatcher(
            notifier=overrides.get("notifier", notifier),
            queue=queue,
            channel_available=lambda: channel["up"],
            max_length=None,
            clock=clock,
            sleep=clock.sleep,
        )
    return _make


# ========================
# TEST GROUP: MessageQueue
# ========================
def test_capacity_keeps_last_fifty_in_order(queue):
    """Enqueuing past capacity evicts the oldest entries first"""
    for i in range(60):
        queue.enqueue(msg(MessageCategory.ALERT, f"m{i}", at=i))

    bodies = [m.body for m in queue.messages()]
    assert len(queue) == 50
    assert bodies == [f"m{i}" for i in range(10, 60)]


def test_coalesce_keeps_latest_alert_then_critical(queue):
    queue.enqueue(msg(MessageCategory.START, "s"))
    queue.enqueue(msg(MessageCategory.CRITICAL, "c1"))
    queue.enqueue(msg(MessageCategory.ALERT, "a1"))
    queue.enqueue(msg(MessageCategory.TRYING, "t"))
    queue.enqueue(msg(MessageCategory.ALERT, "a2"))
    queue.enqueue(msg(MessageCategory.HEARTBEAT, "h"))

    assert [m.body for m in queue.coalesce()] == ["a2", "c1"]


def test_unreadable_entries_are_dropped():
    store = MemoryStore({QUEUE_KEY: [{"category": "BOGUS", "body": "x", "enqueued_at": 0},
                                     {"category": "OK", "body": "fine", "enqueued_at": 1}]})
    queue = MessageQueue(store)

    assert [m.body for m in queue.messages()] == ["fine"]


def test_queue_survives_new_instance(tmp_path):
    """Entries are persisted through the store, not held in memory"""
    from reconnect_router.store import FileStore

    MessageQueue(FileStore(tmp_path)).enqueue(msg(MessageCategory.ALERT, "persisted"))

    reloaded = MessageQueue(FileStore(tmp_path))
    assert [m.body for m in reloaded.messages()] == ["persisted"]


# ==================================
# TEST GROUP: NotificationDispatcher
# ==================================
def test_channel_down_enqueues(make_dispatcher, queue, notifier, channel):
    channel["up"] = False
    dispatcher = make_dispatcher()

    assert dispatcher.notify(MessageCategory.ALERT, "router gone") is False
    assert notifier.attempts == 0
    assert len(queue) == 1
    assert queue.messages()[0].body.endswith(" - router gone")


def test_channel_up_sends_immediately(make_dispatcher, queue, notifier):
    dispatcher = make_dispatcher()

    assert dispatcher.notify(MessageCategory.OK, "all good") is True
    assert len(notifier.sent) == 1
    assert notifier.sent[0].startswith("[OK] ")
    assert notifier.sent[0].endswith(" - all good")
    assert len(queue) == 0


def test_flush_coalesces_then_sends_trigger(make_dispatcher, queue, notifier, clock):
    """{Alert, Trying, Alert, Critical, Heartbeat} → latest Alert, Critical, trigger"""
    for category, body in [
        (MessageCategory.ALERT, "a1"),
        (MessageCategory.TRYING, "t1"),
        (MessageCategory.ALERT, "a2"),
        (MessageCategory.CRITICAL, "c1"),
        (MessageCategory.HEARTBEAT, "h1"),
    ]:
        queue.enqueue(msg(category, body))

    dispatcher = make_dispatcher()
    dispatcher.notify(MessageCategory.OK, "back")

    assert notifier.sent[0] == "[ALERT] a2"
    assert notifier.sent[1] == "[CRITICAL] c1"
    assert notifier.sent[2].startswith("[OK] ")
    assert notifier.sent[2].endswith(" - back")
    assert len(notifier.sent) == 3

    assert clock.sleeps == [FLUSH_PAUSE_S, FLUSH_PAUSE_S]
    assert len(queue) == 0


def test_flush_clears_queue_even_when_sends_fail(make_dispatcher, queue, clock):
    """Queued messages are best-effort: failures do not keep them around"""
    queue.enqueue(msg(MessageCategory.ALERT, "a1"))
    failing = RecordingNotifier(results=[False])

    dispatcher = make_dispatcher(notifier=failing)
    assert dispatcher.notify(MessageCategory.OK, "back") is False

    assert failing.attempts == 6   # 3 tries for the queued alert + 3 for the trigger
    assert len(queue) == 0


def test_queued_start_is_not_replayed(make_dispatcher, queue, notifier):
    queue.enqueue(msg(MessageCategory.START, "started"))

    make_dispatcher().notify(MessageCategory.ALERT, "down")

    assert len(notifier.sent) == 1
    assert notifier.sent[0].startswith("[ALERT] ")
