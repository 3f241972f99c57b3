# --- Standard library imports ---
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

# --- Project imports ---
from .config import Config


# --- Custom log levels ---
TIMING = 25   # Between INFO (20) and WARNING (30)
logging.addLevelName(TIMING, "TIME")

def timing(self, message, *args, **kwargs):
    """Add `timing` method to Logger for TIMING-level logs."""
    if self.isEnabledFor(TIMING):
        self._log(TIMING, message, args, stacklevel=2, **kwargs)

logging.Logger.timing = timing

# --- Filters ---
class TimingFilter(logging.Filter):
    """Filter out TIMING logs unless explicitly enabled."""
    def __init__(self, enabled: bool):
        super().__init__()
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == TIMING:
            return self.enabled
        return True

# --- Format configuration constants ---
LOG_LEVEL_EMOJIS = {
    logging.DEBUG: "🧱",
    logging.INFO: "🟢",
    TIMING: "⚡️",
    logging.WARNING: "⚠️ ",
    logging.ERROR: "❌",
    logging.CRITICAL: "🔥",
}

LEVEL_NAME_MAP = {
    "WARNING": "WARN",
    "CRITICAL": "FATAL",
}

# Dedicated append-only logs; records here never reach the console/events log
DOWNTIME_LOGGER = "downtime"
HEARTBEAT_LOGGER = "heartbeat"

FALLBACK_LOG_DIR = Path("/tmp")

# --- Formatters ---
class EmojiFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        """
        Formatter that prepends an emoji per
        log level and shortens log level names.
        """
        record.levelemoji = LOG_LEVEL_EMOJIS.get(record.levelno, "")
        record.levelname = LEVEL_NAME_MAP.get(record.levelname, record.levelname)
        return super().format(record)

# --- File handlers ---
def _rotating_handler(path: str | Path) -> RotatingFileHandler | None:
    """
    Open a size-rotated append-only log file.

    Falls back to /tmp/<basename> when the configured directory cannot be
    created or written. Returns None if neither location is usable.
    """
    path = Path(path)
    for candidate in (path, FALLBACK_LOG_DIR / path.name):
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                candidate,
                maxBytes=Config.LOG_MAX_BYTES or 10 * 1024 * 1024,
                backupCount=Config.LOG_BACKUP_COUNT or 3,
                encoding="utf-8",
            )
        except OSError as exc:
            logging.getLogger("logger").warning(
                f"Cannot open log file {candidate} ({exc.__class__.__name__}); "
                f"trying fallback"
            )
            continue
        if candidate != path:
            logging.getLogger("logger").warning(
                f"Log {path} unavailable, falling back to {candidate}"
            )
        return handler
    return None

# --- Public logging setup API ---
def setup_logging(level=logging.INFO, log_file: str | Path | None = None) -> None:
    """
    Configure global logging with emoji decorations and optional TIMING logs.

    When `log_file` is given, the same records are also appended to a
    rotating events log.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = EmojiFormatter(
        fmt="%(asctime)s %(levelemoji)s %(name)s:%(funcName)s → %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    # Apply optional TIMING filter based on config
    handler.addFilter(TimingFilter(enabled=Config.LOG_TIMING))
    root.addHandler(handler)

    if log_file:
        file_handler = _rotating_handler(log_file)
        if file_handler:
            file_handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            file_handler.addFilter(TimingFilter(enabled=Config.LOG_TIMING))
            root.addHandler(file_handler)

def setup_event_logs(downtime_log: str | Path, heartbeat_log: str | Path) -> None:
    """
    Attach rotating files to the downtime and heartbeat loggers.

    Line formats:
        downtime:  TIMESTAMP | EVENT | DURATION | DETAIL
        heartbeat: TIMESTAMP | HEARTBEAT | EVENT | DETAIL
    """
    for name, path in ((DOWNTIME_LOGGER, downtime_log), (HEARTBEAT_LOGGER, heartbeat_log)):
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()

        handler = _rotating_handler(path)
        if handler is None:
            continue
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)

def get_logger(name: str) -> logging.Logger:
    """
    Return a namespaced logger for any module.
    """
    return logging.getLogger(f"{name}")

def tlog(
    logger: logging.Logger,
    emoji: str,
    subsystem: str,
    state: str,
    primary: str = "-",
    meta: str | None = None,
    level: int = logging.INFO,
) -> None:
    """
    One aligned decision line, e.g.

        🔴 RECOVERY   TRIGGER    restart wlan0 | attempt 2/10
    """
    line = f"{emoji} {subsystem:<10} {state:<10} {primary}"
    if meta:
        line += f" | {meta}"
    logger.log(level, line, stacklevel=2)
