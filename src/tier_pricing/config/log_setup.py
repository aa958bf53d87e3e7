import logging
import logging.handlers
import sys
from typing import Optional

from .settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Install file and console handlers on the root logger, once."""
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        return

    settings = settings or get_settings()
    log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        settings.log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding='utf-8'
    )
    file_handler.setFormatter(log_formatter)
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(settings.log_level)

    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    LOGGER.info("Logging configured successfully.")
