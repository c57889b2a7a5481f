"""Process-wide logging setup.

Modules only call `logging.getLogger(__name__)`; the app factory calls
`configure_logging()` once at import time.
"""

import logging

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
