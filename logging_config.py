# logging_config.py
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# chatty SDK transports; their request lines duplicate our own attempt logs
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "google_genai")


def setup_logging(level: str = "INFO") -> None:
    """Route every module logger to stdout in one format.

    Called once from ``main.main`` before the app is built, so config errors
    are logged the same way as request errors.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # uvicorn keeps its own access/error handlers
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).propagate = False
