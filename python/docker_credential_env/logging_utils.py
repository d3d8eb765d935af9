import logging
import sys
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(level: int = logging.WARNING, fmt: Optional[str] = None) -> None:
    """Configure root logging once. Subsequent calls only adjust the level.

    Records always go to stderr: stdout carries the helper protocol.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=fmt or DEFAULT_FORMAT, stream=sys.stderr)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module/logger by name."""
    return logging.getLogger(name) if name else logging.getLogger(__name__)


def log_exception(logger: logging.Logger, message: str, exc_info: Exception) -> None:
    """Log an error with its type, without the traceback.

    Tracebacks are only emitted at DEBUG level since they may be noisy for a
    helper invoked by the docker client.
    """
    logger.error(f"{message}: {exc_info}")
    logger.debug(f"Exception type: {type(exc_info).__name__}", exc_info=exc_info)
