from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .settings import settings

_CONFIGURED = False


def _parse_level(raw: str) -> int:
    name = (raw or "INFO").strip().upper()
    level = getattr(logging, name, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    service: str = "smartstudy",
    level: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Console + rotating file logging for the whole process. Safe to call from
    every entry point; only the first call installs handlers.
    """
    global _CONFIGURED

    if _CONFIGURED:
        return logging.getLogger(service)

    log_level = _parse_level(level or settings.log_level)
    logs_path = Path(log_dir or settings.log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)
    log_file = logs_path / "smartstudy.log"

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(fmt)
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        filename=str(log_file),
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    _CONFIGURED = True
    logger = logging.getLogger(service)
    logger.info(
        "logging_configured level=%s log_file=%s max_bytes=%d backups=%d",
        logging.getLevelName(log_level),
        log_file,
        settings.log_max_bytes,
        settings.log_backup_count,
    )
    return logger
