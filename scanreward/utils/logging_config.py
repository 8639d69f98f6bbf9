"""
Logging setup for ScanReward.

Usage:
    from scanreward.utils.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = None) -> None:
    """Configure the root logger once per process."""
    global _configured
    if _configured:
        return

    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # SQLAlchemy engine logging is noisy at INFO
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
