import os
import json
import logging
from datetime import datetime

DEBUG_MODE = os.environ.get("PATIENT_API_DEBUG", "False").lower() == "true"

ROOT_LOGGER = "patient_api"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


_debug_logger = get_logger("debug")


def configure_logging(level: str = "INFO", debug: bool = False):
    """Attach a console handler to the package logger. Safe to call twice."""
    global DEBUG_MODE

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        root.addHandler(handler)

    DEBUG_MODE = DEBUG_MODE or debug
    if DEBUG_MODE:
        _debug_logger.setLevel(logging.DEBUG)


def log_debug(event: str, data: dict):
    """
    Logs structured debug info if enabled.
    """
    if not DEBUG_MODE:
        return

    entry = {
        "timestamp": datetime.now().isoformat(),
        "event": event,
        "data": data
    }
    _debug_logger.debug(json.dumps(entry, indent=2, default=str))
