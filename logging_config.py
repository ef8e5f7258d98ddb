import os
import sys
import logging
from typing import Optional

from loguru import logger

# Driver chatter drowns out per-request lag analysis logs
NOISY_LIBRARIES = ['pymongo', 'pymongo.serverSelection', 'motor', 'httpx', 'httpcore', 'uvicorn.access']

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def _resolve_level(debug: Optional[bool]) -> str:
    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() in ["true", "1", "yes"]
    if debug:
        return "DEBUG"
    return os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(debug: Optional[bool] = None) -> None:
    env = os.getenv("ENV", "local")
    level = _resolve_level(debug)

    logger.remove()

    if env == "production":
        logger.add(sys.stderr, level=level, format="{message}", serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        logger.add(log_file, level=level, rotation="50 MB", retention="14 days", serialize=True)

    for lib in NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)

    logger.debug(f"Logging configured (env={env}, level={level})")
