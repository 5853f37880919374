"""Logging setup shared by the API process and the operator scripts."""
import logging
from typing import Optional

from core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stream handler to the root logger once per process."""
    global _configured
    if _configured:
        return

    logging.basicConfig(level=(level or settings.log_level), format=LOG_FORMAT)
    # SQL echo is controlled by DATABASE_ECHO, keep the engine logger quiet otherwise
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
