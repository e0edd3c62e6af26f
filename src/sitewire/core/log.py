"""Logger helpers shared by the framework."""

from __future__ import annotations

import logging
import sys
from typing import Any

ROOT_LOGGER = "sitewire"

# between INFO and WARNING
NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(obj: Any) -> logging.Logger:
    """
    Return the logger for a class, an instance of it, or a plain name.

    Class loggers are named "<module>.<QualName>".
    """
    if isinstance(obj, str):
        return logging.getLogger(obj)
    cls = obj if isinstance(obj, type) else type(obj)
    return logging.getLogger(f"{cls.__module__}.{cls.__qualname__}")


def configure(level: int | str = logging.INFO, log_path: str | None = None) -> logging.Logger:
    """
    Attach a single handler to the framework root logger.

    Logs go to log_path when given, else to stderr. Calling this again
    replaces the previous handler.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        if getattr(h, "_sitewire", False):
            logger.removeHandler(h)
            h.close()

    handler: logging.Handler
    if log_path:
        handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._sitewire = True  # type: ignore[attr-defined]

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
