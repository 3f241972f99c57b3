import smtplib
import pytest
import responses
from unittest.mock import MagicMock, patch

from reconnect_router.notifier import (
    SmtpNotifier,
    WebhookNotifier,
    normalize_text,
    send_with_retry,
    truncate,
)

from conftest import RecordingNotifier


WEBHOOK_URL = "https://ntfy.example.net/router"


class ExplodingNotifier:
    def __init__(self):
        self.attempts = 0

    def deliver(self, text: str) -> bool:
        self.attempts += 1
        raise RuntimeError("transport blew up")


# ===========================
# TEST GROUP: Text Shaping
# ===========================
# Functions: normalize_text(), truncate()
# ---------------------------------------
@pytest.mark.parametrize(
    "text, expected",
    [
        # ✅ Plain ASCII untouched
        ("Pi-hole Online! Down: 0m45s", "Pi-hole Online! Down: 0m45s"),

        # ✅ Accents transliterated
        ("Café réseau", "Cafe reseau"),

        # ✅ Emoji dropped
        ("Router 🛜 down", "Router  down"),
    ],
)

def test_normalize_text(text, expected):
    """Outgoing text is reduced to plain ASCII"""
    assert normalize_text(text) == expected

@pytest.mark.parametrize(
    "text, limit, expected",
    [
        ("short", 160, "short"),
        ("x" * 200, 160, "x" * 160),
        ("no limit", None, "no limit"),
    ],
)

def test_truncate(text, limit, expected):
    assert truncate(text, limit) == expected


# ============================
# TEST GROUP: Bounded Delivery
# ============================
# Function: send_with_retry()
# ---------------------------
def test_send_with_retry_first_attempt(clock):
    notifier = RecordingNotifier()

    assert send_with_retry(notifier, "hello", sleep=clock.sleep) is True
    assert notifier.attempts == 1
    assert clock.sleeps == []

def test_send_with_retry_succeeds_on_third_attempt(clock):
    """Two transport failures, third accepted → True with two pauses"""
    notifier = RecordingNotifier(results=[False, False, True])

    assert send_with_retry(notifier, "hello", sleep=clock.sleep) is True
    assert notifier.attempts == 3
    assert clock.sleeps == [2, 2]

def test_send_with_retry_gives_up_after_three(clock):
    notifier = RecordingNotifier(results=[False])

    assert send_with_retry(notifier, "hello", sleep=clock.sleep) is False
    assert notifier.attempts == 3

def test_send_with_retry_never_raises(clock):
    """A transport raising is treated as a failed attempt"""
    notifier = ExplodingNotifier()

    assert send_with_retry(notifier, "hello", sleep=clock.sleep) is False
    assert notifier.attempts == 3

def test_send_with_retry_shapes_payload(clock):
    notifier = RecordingNotifier()

    send_with_retry(notifier, "é" * 300, max_length=160, sleep=clock.sleep)

    assert notifier.sent == ["e" * 160]


# ==============================
# TEST GROUP: Transport: Webhook
# ==============================
@responses.activate
def test_webhook_delivers_plain_text():
    responses.add(responses.POST, WEBHOOK_URL, status=200)

    assert WebhookNotifier(WEBHOOK_URL).deliver("[OK] back") is True
    assert responses.calls[0].request.body == b"[OK] back"

@responses.activate
def test_webhook_server_error_is_failure():
    responses.add(responses.POST, WEBHOOK_URL, status=500)

    assert WebhookNotifier(WEBHOOK_URL).deliver("[OK] back") is False

@responses.activate
def test_webhook_connection_error_is_failure():
    """No registered response → ConnectionError from responses"""
    assert WebhookNotifier(WEBHOOK_URL).deliver("[OK] back") is False


# ===========================
# TEST GROUP: Transport: SMTP
# ===========================
def test_smtp_sends_message():
    with patch("reconnect_router.notifier.smtplib.SMTP") as mock_smtp:
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        notifier = SmtpNotifier("1234567890@vtext.com", host="mail.local", port=2525)
        assert notifier.deliver("[ALERT] down") is True

    mock_smtp.assert_called_once_with("mail.local", 2525, timeout=8)
    sent = server.send_message.call_args.args[0]
    assert sent["To"] == "1234567890@vtext.com"
    assert sent.get_content().strip() == "[ALERT] down"
    server.starttls.assert_not_called()
    server.login.assert_not_called()

def test_smtp_tls_and_login():
    with patch("reconnect_router.notifier.smtplib.SMTP") as mock_smtp:
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        notifier = SmtpNotifier(
            "1234567890@vtext.com", use_tls=True, username="pi", password="secret"
        )
        assert notifier.deliver("hi") is True

    server.starttls.assert_called_once()
    server.login.assert_called_once_with("pi", "secret")

@pytest.mark.parametrize(
    "error",
    [
        smtplib.SMTPRecipientsRefused({}),
        ConnectionRefusedError(),
        TimeoutError(),
    ],
)

def test_smtp_failures_return_false(error):
    with patch("reconnect_router.notifier.smtplib.SMTP", side_effect=error):
        assert SmtpNotifier("1234567890@vtext.com").deliver("hi") is False
