import logging
import sys
from typing import Optional

from core.config import config

RESET = "\033[0m"
BOLD = "\033[1m"
GREY = "\033[90m"
CYAN = "\033[36m"
MAGENTA = "\033[95m"

# (color, marker) per level
LEVEL_STYLES = {
    logging.DEBUG: ("\033[96m", "🔍"),
    logging.INFO: ("\033[92m", "ℹ️ "),
    logging.WARNING: ("\033[93m", "⚠️ "),
    logging.ERROR: ("\033[91m", "❌"),
    logging.CRITICAL: (BOLD + "\033[41m\033[37m", "💥"),
}

LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(location)s │ %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that are chatty at INFO
QUIET_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "asyncio",
    "multipart",
    "aiosqlite",
    "reportlab",
)


def _paint(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{RESET}" if enabled else text


class ConsoleFormatter(logging.Formatter):
    """Single-line formatter; adds level colors and markers on a terminal."""

    def __init__(self, use_colors: bool = True):
        super().__init__(LOG_FORMAT, DATE_FORMAT)
        self.use_colors = use_colors

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return _paint(super().formatTime(record, datefmt), GREY, self.use_colors)

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the untouched record
        record = logging.makeLogRecord(record.__dict__)
        record.location = (
            _paint(record.filename, CYAN, self.use_colors)
            + _paint(":", GREY, self.use_colors)
            + _paint(str(record.lineno), MAGENTA, self.use_colors)
        )
        if self.use_colors:
            color, marker = LEVEL_STYLES.get(record.levelno, ("", "•"))
            record.levelname = f"{color}{marker}  {record.levelname}{RESET}"
        return super().format(record)


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger for the portal.

    The level comes from LOG_LEVEL unless given. SQL statements are only
    logged at DEBUG since they carry participant names and contacts.
    Colors are used only when stdout is a terminal.
    """
    level_name = (level or config.LOG_LEVEL).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    use_colors = sys.stdout.isatty()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if use_colors:
        print(
            f"\n{BOLD}\033[92m  🌱 {config.APP_NAME} ({config.APP_ENV}) "
            f"{GREY}│ log level {level_name}{RESET}\n"
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    sql_logger = logging.getLogger("sqlalchemy.engine")
    if log_level <= logging.DEBUG:
        sql_logger.setLevel(logging.DEBUG)
        root_logger.info("SQL logging enabled (DEBUG mode)")
    else:
        sql_logger.setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)
