"""Logging configuration."""
import logging
import sys
from typing import Optional

from receptionist.core.config import settings

# Chatty libraries only report problems
QUIET_LOGGERS = ("httpx", "openai", "twilio.http_client", "sqlalchemy.engine")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging.

    Every receptionist log line carries a bracketed event tag such as
    ``[CALL CONNECTED]`` or ``[HANDOFF]`` so a call can be followed with grep.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
