# logger.py
# file logging for mutations and failures (console output stays with termcolor)

import logging
import os
import sys
from datetime import datetime

logger = logging.getLogger("cafe_db")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_dir() -> str:
    """return the log directory, creating it if needed"""
    log_dir = os.environ.get("CAFE_DB_LOG_DIR") or os.path.expanduser("~/.cafe-db/logs")
    os.makedirs(log_dir, exist_ok=True)
    return log_dir


def configure_logging(log_dir: str | None = None, level: int = logging.INFO) -> str:
    """attach a dated file handler to the cafe_db logger; returns the log file path"""
    log_dir = log_dir or get_log_dir()
    log_path = os.path.join(log_dir, f"cafe_{datetime.now().strftime('%Y%m%d')}.log")
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    # keep repl output clean; the console gets cprint messages instead
    logger.propagate = False
    return log_path


def log_event(msg: str):
    """record an informational event"""
    logger.info(msg)


def log_warning(msg: str):
    """record a warning"""
    logger.warning(msg)


def log_error(msg: str, exc: Exception | None = None):
    """record an error, with traceback when an exception is given"""
    if exc:
        logger.error(f"{msg}: {exc}", exc_info=exc)
    else:
        logger.error(msg)


def log_startup(db_path: str, log_path: str):
    """record interpreter / database details at startup"""
    logger.info("=" * 60)
    logger.info("CAFE-DB STARTED")
    logger.info("=" * 60)
    logger.info(f"python version: {sys.version}")
    logger.info(f"platform: {sys.platform}")
    logger.info(f"database: {db_path}")
    logger.info(f"log file: {log_path}")
    logger.info("=" * 60)
