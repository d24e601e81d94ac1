import logging
import os
import sys


def configure_logging(level: int | None = None) -> None:
    """
    Configure root logging for the application.

    - Logs go to stdout
    - Simple, readable format with time, level, and logger name
    - Level defaults to SETKEEPER_LOG_LEVEL (INFO when unset)
    """
    if level is None:
        level_name = os.getenv("SETKEEPER_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()

    # Avoid adding handlers multiple times
    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root.addHandler(handler)
    root.setLevel(level)

    # requests/urllib3 connection chatter is noise at INFO
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
