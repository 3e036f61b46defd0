import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{extra} <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> int:
    """
    Replace loguru's default sink with one at the configured level.

    Bound extras (dependency, correlation_id) are rendered with every record.
    Returns the id of the new sink.
    """
    logger.remove()
    return logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
