"""Logging configuration helpers."""

import logging

APP_LOGGER = "macro_ledger"
# Chatty at INFO: one line per OpenAI request.
_QUIET_LOGGERS = ("httpx", "openai")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Send ledger and pipeline logs to one stream handler.

    Safe to call more than once; only the level is updated on repeat calls.
    """
    logger = logging.getLogger(APP_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
