from __future__ import annotations

import logging
import sys
from typing import TextIO

from taurus.runtime.env_policy import log_level_from_env

ROOT_LOGGER_NAME = "taurus"
_LOG_FORMAT = "[%(levelname)s %(name)s] %(message)s"
_HANDLER_MARKER = "_taurus_handler"


def configure_logging(
    *,
    level: int | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach a stderr handler to the `taurus` logger when logging is enabled.

    Without an explicit level the TAURUS_LOG environment variable decides;
    when neither is set the logger stays silent. Calling this again replaces
    the previously installed handler instead of stacking another one.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    resolved = level if level is not None else log_level_from_env()
    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)
    handler: logging.Handler
    if resolved is None:
        handler = logging.NullHandler()
        setattr(handler, _HANDLER_MARKER, True)
        logger.addHandler(handler)
        return logger
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger
