"""Logging setup shared by the poller, transport and HTTP surface."""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s in %(name)s: %(message)s"

_logging_configured = False


def setup_logging(level: str | int = logging.INFO) -> None:
    """Configure the root logger once with a single stdout handler.

    Args:
        level: Log level name (``"INFO"``) or number.
    """
    global _logging_configured
    if _logging_configured:
        return

    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)

    # Third-party chatter
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (typically ``__name__``).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
