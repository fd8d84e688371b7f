import sys
from loguru import logger
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

_configured_as: Optional[tuple] = None

def _console(message):
    # resolved per message so redirected or captured stderr is honoured
    sys.stderr.write(message)

def setup_logger(log_level: str = "INFO", log_file: Optional[Path] = None):
    """Route loguru to the console and, optionally, a rotating debug file.

    Calling again with the same arguments is a no-op.
    """
    global _configured_as

    key = (log_level.upper(), str(log_file) if log_file else None)
    if _configured_as == key:
        return logger

    logger.remove()
    logger.add(_console, format=CONSOLE_FORMAT, level=key[0], colorize=True)

    # Generation runs are long; keep a full debug trail on disk when asked
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
            encoding="utf-8",
        )

    _configured_as = key
    return logger
