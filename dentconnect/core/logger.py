import logging
import sys

from dentconnect.core.config import settings


def setup_logging() -> logging.Logger:
    """
    Configure the `dentconnect` logger. Module loggers created with
    logging.getLogger(__name__) propagate to it.
    """
    logger = logging.getLogger("dentconnect")
    logger.setLevel(settings.LOG_LEVEL.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    if not logger.handlers:
        logger.addHandler(handler)

    return logger

logger = setup_logging()
