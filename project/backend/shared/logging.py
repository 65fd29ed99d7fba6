"""
JSON logging shared by every module.

Each line is one JSON object. The job being worked on is attached through a
context variable, so pipeline steps log without threading the id through.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union
from uuid import UUID

from shared.config import Settings, get_settings

LOG_FILE_NAME = "app.log"
LOG_FILE_MAX_BYTES = 100 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5

job_id_context: ContextVar[Optional[str]] = ContextVar("job_id", default=None)

# Anything else on a record came in through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {"message", "asctime"}

_PLAIN_TYPES = (str, int, float, bool, type(None))


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "logger": record.name,
            "message": record.getMessage(),
        }

        job_id = job_id_context.get()
        if job_id:
            entry["job_id"] = job_id

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            entry[key] = value if isinstance(value, _PLAIN_TYPES) else str(value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def build_handlers(settings: Settings) -> List[logging.Handler]:
    """Stdout, plus a rotating file under settings.log_dir when one is set."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
        ))

    for handler in handlers:
        handler.setFormatter(JSONFormatter())
    return handlers


def get_logger(name: str) -> logging.Logger:
    """
    Get the JSON logger for a module.

    Handlers are attached on the first call for a name; later calls return the
    same logger untouched.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    settings = get_settings()
    logger.setLevel(settings.log_level)
    for handler in build_handlers(settings):
        logger.addHandler(handler)
    return logger


def set_job_id(job_id: Optional[Union[str, UUID]]) -> None:
    """Attach job_id to every log line written from the current context (None clears it)."""
    job_id_context.set(str(job_id) if job_id else None)


def get_job_id() -> Optional[str]:
    return job_id_context.get()
