from __future__ import annotations

import logging

from .config import get_log_level

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel(level or get_log_level())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    # passlib warns on every start about the bcrypt build it cannot introspect
    logging.getLogger("passlib").setLevel(logging.ERROR)
