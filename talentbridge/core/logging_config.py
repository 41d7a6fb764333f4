"""
Logging setup - one stream handler for the whole app.

Modules log through `logging.getLogger(__name__)`.
"""

import logging
import sys

from talentbridge.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging() -> None:
    """Configure root logging once, at application start."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # uvicorn access lines are noisy in debug runs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
