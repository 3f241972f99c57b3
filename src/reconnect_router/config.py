# --- Standard library imports ---
import os
import socket

# --- Third-party imports ---
from dotenv import load_dotenv


# Load .env once
load_dotenv()

def _env_int(name: str, default: int) -> int | None:
    """Parse an integer setting; unparseable values become None (rejected at startup)."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return None

def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() == "true"

def _env_list(name: str, default: str) -> tuple[str, ...]:
    return tuple(
        item.strip() for item in os.getenv(name, default).split(",") if item.strip()
    )


class Config:
    """Centralized config for network targets, recovery policy, notifications and paths"""

    HOSTNAME = os.getenv("HOSTNAME_LABEL", socket.gethostname())
    DEVICE_LABEL = os.getenv("DEVICE_LABEL", "Pi-hole")   # prefix used in notification text

    # --- Network targets ---
    class Network:
        ROUTER_IP = os.getenv("ROUTER_IP", "192.168.1.1")
        DNS_CHECK_HOSTS = _env_list("DNS_CHECK_HOSTS", "1.1.1.1,1.0.0.1")
        SMS_INTERNET_CHECK = os.getenv("SMS_INTERNET_CHECK", "8.8.8.8")
        INTERFACE = os.getenv("INTERFACE", "wlan0")
        USE_SUDO = _env_bool("USE_SUDO", True)

        # --- Probe parameters (ping -c / -W / -s) ---
        PING_COUNT = _env_int("PING_COUNT", 2)
        PING_TIMEOUT = _env_int("PING_TIMEOUT", 3)
        PING_SIZE = _env_int("PING_SIZE", 32)

    # --- Recovery Policy ---
    class Recovery:
        MAX_RETRIES = _env_int("MAX_RETRIES", 10)
        RETRY_DELAY = _env_int("RETRY_DELAY", 15)
        RESTART_INTERVAL = _env_int("RESTART_INTERVAL", 180)
        MAX_INTERNET_FAILURES = _env_int("MAX_INTERNET_FAILURES", 5)
        SMS_INTERNET_FAILURE_THRESHOLD = _env_int("SMS_INTERNET_FAILURE_THRESHOLD", 10)

    # --- Heartbeat ---
    class Heartbeat:
        ENABLED = _env_bool("HEARTBEAT_ENABLED", True)
        INTERVAL = _env_int("HEARTBEAT_INTERVAL", 3600)
        MISSED_THRESHOLD = _env_int("MISSED_HEARTBEATS_THRESHOLD", 3)

    # --- Startup notification de-duplication ---
    STARTUP_THRESHOLD = _env_int("STARTUP_THRESHOLD", 300)

    # --- Notifications ---
    class Notify:
        TRANSPORT = os.getenv("NOTIFY_TRANSPORT", "smtp").strip().lower()
        MAX_LENGTH = _env_int("NOTIFY_MAX_LENGTH", 160)

        PHONE_NUMBER = os.getenv("PHONE_NUMBER", "")
        CARRIER_GATEWAY = os.getenv("CARRIER_GATEWAY", "vtext.com")
        SMS_EMAIL = os.getenv("SMS_EMAIL") or (
            f"{PHONE_NUMBER}@{CARRIER_GATEWAY}" if PHONE_NUMBER else ""
        )
        EMAIL_SUBJECT = os.getenv("EMAIL_SUBJECT", "Pi-hole Alert")
        EMAIL_FROM = os.getenv("EMAIL_FROM", "")

        SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
        SMTP_PORT = _env_int("SMTP_PORT", 25)
        SMTP_USERNAME = os.getenv("SMTP_USERNAME")
        SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
        SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", False)

        WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")

    # --- Network Policy (NOT user configurable) ---
    API_TIMEOUT = 8   # seconds (notification transports)
    COMMAND_TIMEOUT = 30   # seconds (ip / dhclient / dhcpcd)

    # --- Paths ---
    class Paths:
        STATE_DIR = os.getenv("STATE_DIR", "/tmp/reconnect_router")
        LOCK_FILE = os.getenv("LOCK_FILE", "/tmp/reconnect_router.lock")

    # --- Observability Policy ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_TIMING = _env_bool("LOG_TIMING", False)
    LOG_FILE = os.getenv("LOG_FILE", "/var/log/reconnect_router.log")
    DOWNTIME_LOG = os.getenv("DOWNTIME_LOG", "/var/log/router_downtime.log")
    HEARTBEAT_LOG = os.getenv("HEARTBEAT_LOG", "/var/log/router_heartbeat.log")
    LOG_MAX_BYTES = _env_int("LOG_MAX_BYTES", 10 * 1024 * 1024)
    LOG_BACKUP_COUNT = _env_int("LOG_BACKUP_COUNT", 3)
