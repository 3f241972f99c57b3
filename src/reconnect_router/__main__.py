# --- Standard library imports ---
import sys
import time
import logging
from typing import Callable

# --- Project imports ---
from .config import Config
from .logger import get_logger, setup_logging, setup_event_logs
from .utils import Timer
from .store import FileStore
from .prober import Prober
from .events import EventJournal
from .backoff import BackoffPolicy
from .heartbeat import HeartbeatMonitor
from .interface import InterfaceResetter
from .models import MessageCategory, NetworkState
from .connectivity import ConnectivityMonitor
from .recovery_policy import RecoveryPolicy
from .recovery_controller import RecoveryController
from .lifecycle import ShutdownHook, SingletonLock
from .notifier import SmtpNotifier, WebhookNotifier
from .message_queue import MessageQueue, NotificationDispatcher
from .bootstrap import ConfigError, bootstrap, should_announce_start
from .sanity import print_summary, run_self_test


HEARTBEAT_CHECK_INTERVAL_S = 60


def main_loop(
    monitor: ConnectivityMonitor,
    heartbeat: HeartbeatMonitor,
    backoff: BackoffPolicy,
    monotonic: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    max_cycles: int | None = None,
) -> NetworkState:
    """
    Supervisor loop: check → act → sleep, forever.

    Each iteration:
        - runs the heartbeat check when a minute has passed since the last one
        - resets the per-cycle "already logged" flag
        - runs one connectivity check (may block in the reconnection sub-loop)
        - sleeps for the backoff delay derived from consecutive failures

    Exceptions escaping a cycle are logged and mapped to NetworkState.ERROR;
    the loop itself never exits except through a signal (or `max_cycles`).
    """

    logger = get_logger("main_loop")
    timer = Timer(logger)

    state = NetworkState.UNKNOWN
    last_heartbeat_check = monotonic()
    cycles = 0

    while max_cycles is None or cycles < max_cycles:
        cycles += 1
        timer.start_cycle()

        now = monotonic()
        if now - last_heartbeat_check >= HEARTBEAT_CHECK_INTERVAL_S:
            try:
                heartbeat.check()
            except Exception as e:
                logger.exception(f"Unhandled exception during heartbeat check: {e}")
            last_heartbeat_check = now
            timer.lap("heartbeat.check()")

        monitor.begin_cycle()

        try:
            state = monitor.run_check()
        except Exception as e:
            logger.exception(f"Unhandled exception during run cycle: {e}")
            state = NetworkState.ERROR
        timer.lap("monitor.run_check()")
        timer.end_cycle()

        delay = backoff.delay(monitor.state.consecutive_failures)
        logger.info(f"🛜 Network State [{state.label}]")
        logger.info(f"💤 Sleeping ... {delay:.0f} s")
        sleep(delay)

    return state

def build_notifier(config):
    notify = config.Notify
    if notify.TRANSPORT == "webhook":
        return WebhookNotifier(notify.WEBHOOK_URL, timeout=config.API_TIMEOUT)
    return SmtpNotifier(
        to_address=notify.SMS_EMAIL,
        host=notify.SMTP_HOST,
        port=notify.SMTP_PORT,
        from_address=notify.EMAIL_FROM or None,
        subject=notify.EMAIL_SUBJECT,
        username=notify.SMTP_USERNAME,
        password=notify.SMTP_PASSWORD,
        use_tls=notify.SMTP_USE_TLS,
        timeout=config.API_TIMEOUT,
    )

def main():
    """
    Entry point for the router reconnection watchdog.

    Configures logging, validates the environment, takes the singleton lock
    and starts the supervisor loop.
    """

    # Setup logging policy
    setup_logging(level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO), log_file=Config.LOG_FILE)
    setup_event_logs(Config.DOWNTIME_LOG, Config.HEARTBEAT_LOG)
    logger = get_logger("main")
    logger.info("🚀 Starting router reconnection watchdog")
    logger.debug(f"Python version: {sys.version}")

    try:
        store = FileStore(Config.Paths.STATE_DIR)
        bootstrap(Config, store)
    except (ConfigError, OSError) as e:
        logger.critical(f"Startup aborted: {e}")
        sys.exit(1)

    lock = SingletonLock(Config.Paths.LOCK_FILE)
    if not lock.acquire():
        logger.critical("Script is already running. Exiting.")
        sys.exit(1)

    network = Config.Network
    policy = RecoveryPolicy.from_config(Config)

    # External collaborators
    prober = Prober(network.PING_COUNT, network.PING_TIMEOUT, network.PING_SIZE)
    resetter = InterfaceResetter(use_sudo=network.USE_SUDO, command_timeout=Config.COMMAND_TIMEOUT)
    journal = EventJournal()

    dispatcher = NotificationDispatcher(
        notifier=build_notifier(Config),
        queue=MessageQueue(store),
        channel_available=lambda: prober.probe(network.SMS_INTERNET_CHECK).reachable,
        max_length=Config.Notify.MAX_LENGTH,
    )
    heartbeat = HeartbeatMonitor(
        store,
        dispatcher,
        journal,
        interval_s=Config.Heartbeat.INTERVAL,
        missed_threshold=Config.Heartbeat.MISSED_THRESHOLD,
        enabled=Config.Heartbeat.ENABLED,
        label=Config.DEVICE_LABEL,
    )

    ShutdownHook(resetter, network.INTERFACE, store, lock, heartbeat=heartbeat).install()

    # Core
    monitor = ConnectivityMonitor(
        policy,
        prober,
        RecoveryController(policy, resetter, network.INTERFACE, store),
        dispatcher,
        journal,
        router_ip=network.ROUTER_IP,
        dns_hosts=network.DNS_CHECK_HOSTS,
        label=Config.DEVICE_LABEL,
    )

    print_summary(Config, policy)
    capabilities = run_self_test(resetter, prober, network.INTERFACE, network.ROUTER_IP)
    logger.debug(f"Capabilities: {capabilities}")

    heartbeat.initialize()
    logger.info(f"Network monitoring started for interface {network.INTERFACE}")
    heartbeat.started()

    if should_announce_start(store, time.time(), Config.STARTUP_THRESHOLD):
        dispatcher.notify(
            MessageCategory.START,
            f"{Config.DEVICE_LABEL} network monitoring started on {Config.HOSTNAME}",
        )
        logger.info("Sent startup notification")
    else:
        logger.info("Startup notification suppressed due to recent restart")

    main_loop(monitor, heartbeat, BackoffPolicy(policy.retry_delay_s))

if __name__ == "__main__":
    main()
