"""Logging setup for riplanner.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where records go. Records can be rendered as plain text or as one
JSON object per line, in which case calculation context passed through
``extra`` (reservation id, scenario, month) is kept as separate keys.
"""

import json
import logging
import logging.handlers
import sys
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional


# Extra attributes copied into structured records when present
CONTEXT_FIELDS = (
    'run_id', 'reservation_id', 'scenario', 'month_key', 'group_key',
    'operation', 'duration', 'rows', 'grouping',
)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update({
            name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)
        })

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        return json.dumps(entry, default=str)


class PerformanceLogger:
    """Times the calculation stages (aggregation, projection) at DEBUG level"""

    def __init__(self):
        self.logger = logging.getLogger('riplanner.performance')
        self.durations: Dict[str, float] = {}
        self._open: List[str] = []

    @contextmanager
    def timer(self, operation: str, **context):
        started = time.perf_counter()
        self._open.append(operation)
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            self._open.remove(operation)
            self.durations[operation] = elapsed
            self.logger.debug(
                f"{operation} took {elapsed:.3f}s",
                extra={'operation': operation, 'duration': elapsed, **context},
            )

    @property
    def active_timers(self) -> int:
        return len(self._open)


class LoggerManager:
    """Owns the root logger handlers and the shared performance logger"""

    def __init__(self):
        self.performance_logger = PerformanceLogger()

    @staticmethod
    def _formatter(structured: bool, fmt: str) -> logging.Formatter:
        return StructuredFormatter() if structured else logging.Formatter(fmt)

    def setup_logging(self,
                      level: str = "INFO",
                      log_file: Optional[Path] = None,
                      structured: bool = False,
                      console: bool = True,
                      fmt: str = DEFAULT_FORMAT,
                      max_bytes: int = 10485760,
                      backup_count: int = 5,
                      handler: Optional[logging.Handler] = None):
        """Replace the root handlers.

        ``handler`` takes the place of the stderr console handler; the CLI
        passes a ``RichHandler`` here. A log file always rotates.
        """
        root = logging.getLogger()
        root.setLevel(getattr(logging, level.upper()))
        root.handlers = []

        if handler is None and console:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(self._formatter(structured, fmt))
        if handler is not None:
            root.addHandler(handler)

        if log_file:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
            )
            file_handler.setFormatter(self._formatter(structured, fmt))
            root.addHandler(file_handler)


# Global logger manager instance
logger_manager = LoggerManager()


def setup_logging(**kwargs):
    logger_manager.setup_logging(**kwargs)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_performance_logger() -> PerformanceLogger:
    return logger_manager.performance_logger
