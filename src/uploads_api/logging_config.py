"""Root logging setup for the API process."""
import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Connection-level chatter from the Mongo driver and HTTP clients.
NOISY_LOGGERS = ("pymongo", "urllib3", "urllib3.connectionpool", "httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Set the root level and format, and quiet third-party loggers.

    Args:
        level: Logging level name, e.g. "INFO" or "DEBUG"
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
