"""Root logger configuration."""

import logging
from typing import Union

from pythonjsonlogger import jsonlogger

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logger(level: Union[int, str] = logging.INFO,
                 json: bool = True) -> logging.Logger:
    """Send log records to stderr, as JSON unless ``json`` is False."""
    handler = logging.StreamHandler()
    if json:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            FORMAT, rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        )
    else:
        formatter = logging.Formatter(FORMAT)
    handler.setFormatter(formatter)
    logger = logging.getLogger()
    for existing in list(logger.handlers):
        if getattr(existing, '_authgate', False):
            logger.removeHandler(existing)
    handler._authgate = True    # type: ignore
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
