# --- Standard library imports ---
import time
import smtplib
import unicodedata
from email.message import EmailMessage
from typing import Callable, Protocol

# --- Third-party imports ---
import requests

# --- Project imports ---
from .logger import get_logger
from .utils import retry_call


logger = get_logger("notifier")

SEND_ATTEMPTS = 3
SEND_PAUSE_S = 2


class Notifier(Protocol):
    def deliver(self, text: str) -> bool: ...


class SmtpNotifier:
    """
    Deliver text through an email-to-SMS carrier gateway
    (e.g. 1234567890@vtext.com).
    """

    def __init__(
        self,
        to_address: str,
        host: str = "localhost",
        port: int = 25,
        from_address: str | None = None,
        subject: str = "Pi-hole Alert",
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float = 8,
    ):
        self.to_address = to_address
        self.host = host
        self.port = port
        self.from_address = from_address or f"reconnect-router@{host}"
        self.subject = subject
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def deliver(self, text: str) -> bool:
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = self.to_address
        msg["Subject"] = self.subject
        msg.set_content(text)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
            return True

        except smtplib.SMTPException as e:
            logger.warning(f"SMTP delivery to {self.to_address} failed: {e}")
            return False
        except OSError as e:
            logger.warning(
                f"SMTP server {self.host}:{self.port} unreachable ({e.__class__.__name__})"
            )
            return False


class WebhookNotifier:
    """Deliver text as a plain-text HTTP POST (ntfy, gotify-style endpoints)."""

    def __init__(self, url: str, timeout: float = 8):
        self.url = url
        self.timeout = timeout

    def deliver(self, text: str) -> bool:
        try:
            resp = requests.post(
                self.url,
                data=text.encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=utf-8"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return True

        except requests.RequestException as e:
            logger.warning(f"Webhook delivery failed ({e.__class__.__name__})")
            return False


# ──────────────────────────────────────────────────────────────
# Text shaping
# ──────────────────────────────────────────────────────────────

def normalize_text(text: str) -> str:
    """
    Transliterate to plain ASCII (SMS gateways mangle anything else).

    'é' → 'e', '—' dropped. Falls back to the text verbatim if the
    conversion fails.
    """
    try:
        return (
            unicodedata.normalize("NFKD", text)
            .encode("ascii", "ignore")
            .decode("ascii")
        )
    except (UnicodeError, TypeError):
        return text

def truncate(text: str, limit: int | None) -> str:
    if not limit or len(text) <= limit:
        return text
    return text[:limit]

def send_with_retry(
    notifier: Notifier,
    text: str,
    max_length: int | None = 160,
    attempts: int = SEND_ATTEMPTS,
    pause: float = SEND_PAUSE_S,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Deliver `text` with bounded retries. Never raises.

    Returns:
        True if any attempt was accepted by the transport.
    """
    payload = truncate(normalize_text(text), max_length)

    def attempt() -> bool:
        try:
            return bool(notifier.deliver(payload))
        except Exception:
            logger.exception("Notifier raised during delivery")
            return False

    delivered, used = retry_call(
        attempt, attempts, pause, label="Notification send", sleep=sleep
    )
    if delivered:
        logger.info(f"📨 Notification sent ({used}/{attempts} attempts)")
        return True

    logger.error(f"Failed to send notification after {attempts} attempts")
    return False
