"""Logging setup shared by the CLI and the web app."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Chatty third-party loggers
_QUIET = ("httpx", "httpcore", "openai", "instructor")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("fuorisede").setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLevelName(level)))
