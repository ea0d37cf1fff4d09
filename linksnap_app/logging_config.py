"""
Logging setup for the application.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires the root handler once, at startup.
"""

import logging
from typing import Optional

from linksnap_app.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from settings (idempotent)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
