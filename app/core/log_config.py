import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = settings.log_level) -> logging.Logger:
    """
    Configure the service logger once. Safe to call repeatedly.
    """
    service_logger = logging.getLogger("chat_rooms")
    if not service_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        service_logger.addHandler(handler)
    service_logger.setLevel(level.upper())
    return service_logger


logger = configure_logging()
