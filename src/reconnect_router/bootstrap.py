# ─── Standard library imports ───
import shutil
from typing import Callable

# ─── Project imports ───
from .logger import get_logger
from .utils import is_valid_ip
from .store import LAST_START_KEY


logger = get_logger("bootstrap")

REQUIRED_COMMANDS = ("ping", "ip")
NOTIFY_TRANSPORTS = ("smtp", "webhook")
MAX_RETRY_DELAY_S = 600


class ConfigError(ValueError):
    """Fatal startup problem (invalid configuration or environment)."""


def bootstrap(config, store, which: Callable[[str], str | None] = shutil.which) -> None:
    """
    Validate runtime configuration and environment before the main loop.

    Hard invariant violations raise ConfigError and abort startup. After
    startup nothing here is re-checked; equivalent conditions degrade to
    best-effort handling.
    """

    validate_config(config)
    _check_commands(which)
    _check_state_dir(store, config.Paths.STATE_DIR)

def validate_config(config) -> None:
    """
    Validate every configured value; all problems are reported together.
    """
    problems: list[str] = []
    network = config.Network
    recovery = config.Recovery
    heartbeat = config.Heartbeat
    notify = config.Notify

    # --- Addresses ---
    if not is_valid_ip(network.ROUTER_IP):
        problems.append(f"Invalid router IP: {network.ROUTER_IP!r}")
    if not network.DNS_CHECK_HOSTS:
        problems.append("DNS_CHECK_HOSTS is empty")
    for host in network.DNS_CHECK_HOSTS:
        if not is_valid_ip(host):
            problems.append(f"Invalid DNS check host: {host!r}")
    if not is_valid_ip(network.SMS_INTERNET_CHECK):
        problems.append(f"Invalid SMS internet check host: {network.SMS_INTERNET_CHECK!r}")
    if not network.INTERFACE:
        problems.append("INTERFACE is empty")

    # --- Positive integers (None = unparseable) ---
    positive = {
        "PING_COUNT": network.PING_COUNT,
        "PING_TIMEOUT": network.PING_TIMEOUT,
        "PING_SIZE": network.PING_SIZE,
        "MAX_RETRIES": recovery.MAX_RETRIES,
        "RETRY_DELAY": recovery.RETRY_DELAY,
        "MAX_INTERNET_FAILURES": recovery.MAX_INTERNET_FAILURES,
        "SMS_INTERNET_FAILURE_THRESHOLD": recovery.SMS_INTERNET_FAILURE_THRESHOLD,
        "HEARTBEAT_INTERVAL": heartbeat.INTERVAL,
        "MISSED_HEARTBEATS_THRESHOLD": heartbeat.MISSED_THRESHOLD,
        "NOTIFY_MAX_LENGTH": notify.MAX_LENGTH,
        "SMTP_PORT": notify.SMTP_PORT,
        "LOG_MAX_BYTES": config.LOG_MAX_BYTES,
    }
    non_negative = {
        "RESTART_INTERVAL": recovery.RESTART_INTERVAL,
        "STARTUP_THRESHOLD": config.STARTUP_THRESHOLD,
        "LOG_BACKUP_COUNT": config.LOG_BACKUP_COUNT,
    }
    for name, value in positive.items():
        if value is None or value <= 0:
            problems.append(f"{name} must be a positive integer")
    for name, value in non_negative.items():
        if value is None or value < 0:
            problems.append(f"{name} must be a non-negative integer")

    # --- Cross-field invariants ---
    if recovery.RETRY_DELAY and recovery.RETRY_DELAY > MAX_RETRY_DELAY_S:
        problems.append(f"RETRY_DELAY must not exceed {MAX_RETRY_DELAY_S}s")
    # Internet alerts only fire inside a debounced (2+ failures) outage
    if recovery.SMS_INTERNET_FAILURE_THRESHOLD == 1:
        problems.append("SMS_INTERNET_FAILURE_THRESHOLD must be at least 2")

    # --- Notification target ---
    if notify.TRANSPORT not in NOTIFY_TRANSPORTS:
        problems.append(
            f"NOTIFY_TRANSPORT must be one of {', '.join(NOTIFY_TRANSPORTS)}"
        )
    elif notify.TRANSPORT == "smtp" and "@" not in (notify.SMS_EMAIL or ""):
        problems.append("SMS_EMAIL (or PHONE_NUMBER + CARRIER_GATEWAY) is required for smtp")
    elif notify.TRANSPORT == "webhook" and not (notify.WEBHOOK_URL or "").startswith(("http://", "https://")):
        problems.append("WEBHOOK_URL must be an http(s) URL")

    if problems:
        raise ConfigError("Invalid configuration: " + "; ".join(problems))

def _check_commands(which: Callable[[str], str | None]) -> None:
    missing = [cmd for cmd in REQUIRED_COMMANDS if not which(cmd)]
    if missing:
        raise ConfigError(
            f"Required command(s) not found: {', '.join(missing)}. "
            "Please install the necessary package."
        )

def _check_state_dir(store, state_dir) -> None:
    if not store.writable():
        raise ConfigError(f"State directory is not writable: {state_dir}")

def should_announce_start(store, now: float, threshold_s: int) -> bool:
    """
    Startup de-duplication: suppress START when the previous start was
    less than `threshold_s` ago (crash loop under a service manager).
    Records `now` as the latest start either way.
    """
    try:
        last_start = float(store.read(LAST_START_KEY, 0) or 0)
    except (TypeError, ValueError):
        last_start = 0.0
    store.write(LAST_START_KEY, now)

    elapsed = now - last_start
    if last_start and 0 <= elapsed < threshold_s:
        logger.info(
            f"Script restarted within {int(elapsed)} seconds - suppressing start notification"
        )
        return False
    return True
