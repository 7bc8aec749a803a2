import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = "secret_copier"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def resolve_level(log_level: Optional[str] = None, verbose: int = 0) -> int:
    """
    Pick the effective level.

    Any ``-v`` forces DEBUG. Otherwise the explicit level, then the
    LOG_LEVEL env var, then INFO.
    """
    if verbose > 0:
        return logging.DEBUG
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_logging(log_level: Optional[str] = None, verbose: int = 0) -> logging.Logger:
    """
    Configure the ``secret_copier`` logger hierarchy.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Defaults to LOG_LEVEL env var or INFO
        verbose: count of -v flags

    Returns:
        The configured root logger of the package
    """
    level = resolve_level(log_level, verbose)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger; pass ``__name__`` so it lands under the package hierarchy."""
    return logging.getLogger(name)
