"""Structured (JSON) logging for keygate."""

import logging
import sys
from datetime import date
from typing import Optional

from pythonjsonlogger import jsonlogger

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def _is_ours(handler: logging.Handler) -> bool:
    return getattr(handler, 'keygate', False)


def setup_logger(level: str = 'INFO', logfile: Optional[str] = None) -> None:
    """
    Send JSON log records to stdout and, optionally, to a daily log file.

    Parameters
    ----------
    level : str
        Name or number of the log level, e.g. ``INFO`` or ``20``.
    logfile : str
        Prefix of the log file. Records are written to
        ``<logfile>_<YYYY-MM-DD>.log``, dated when the logger is set up.

    """
    formatter = jsonlogger.JsonFormatter(
        FORMAT,
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
    )
    handlers = [logging.StreamHandler(sys.stdout)]
    if logfile:
        filename = f'{logfile}_{date.today().isoformat()}.log'
        handlers.append(logging.FileHandler(filename, encoding='utf-8'))

    logger = logging.getLogger()
    for handler in [h for h in logger.handlers if _is_ours(h)]:
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.keygate = True     # type: ignore
        logger.addHandler(handler)

    if str(level).isdigit():
        logger.setLevel(int(level))
    else:
        logger.setLevel(str(level).upper())
