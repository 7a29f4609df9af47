"""
Logging set-up for the leaderboard core.

Loggers write to the console and, when a log directory is configured, to one
file per UTC day. Service modules use plain `logging.getLogger(__name__)`
and inherit from the `quraniq` logger configured here.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from quraniq.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def log_file_path(log_dir: str, now: Optional[datetime] = None) -> Path:
    """Daily log file, e.g. logs/quraniq_20260301.log"""
    now = now or datetime.now(timezone.utc)
    return Path(log_dir) / f'quraniq_{now.strftime("%Y%m%d")}.log'


def setup_logger(name: str, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Return `name`'s logger, attaching handlers on first use.
    
    `log_dir` defaults to Config.LOG_DIR; an empty value keeps logging on the
    console only.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    
    level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    log_dir = Config.LOG_DIR if log_dir is None else log_dir
    if log_dir:
        path = log_file_path(log_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    
    # Engine echo is controlled by Config.DEBUG, not by our level
    if not Config.DEBUG:
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    
    return logger
