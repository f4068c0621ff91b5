"""
Structured run log for plan execution.

Every executor event becomes one JSON line in
<assistant>/Output/<plan_id>/logs/exec.jsonl. Messages about a single task go
through a TaskLog bound to its (model, query_id), so every line about a task
carries both keys and can be grepped per model or per query.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

# Known keys, in the order they appear after timestamp/level/message.
# Keys outside this list are appended alphabetically.
FIELD_ORDER = (
    'plan_id',
    'model',
    'query_id',
    'provider',
    'tokens',
    'duration_seconds',
    'output_path',
    'event',
    'error',
    'error_type',
    'tasks',
    'workers',
    'results',
    'errors',
    'skipped',
)


class _FlushingFileHandler(logging.FileHandler):
    """Flushes every line so `tail -f` follows a running plan."""

    def emit(self, record):
        super().emit(record)
        self.flush()


class JSONLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        fields: Dict[str, Any] = getattr(record, "fields", {})
        for key in FIELD_ORDER:
            if key in fields:
                entry[key] = fields[key]
        for key in sorted(set(fields) - set(FIELD_ORDER)):
            entry[key] = fields[key]

        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class RunLogger:
    """
    JSONL log for one plan run.

    Nothing touches the disk until the first message, so a run that fails
    before doing any work leaves no empty log behind. Without a log_dir,
    messages only reach the optional stderr echo.

    Usage:
        with RunLogger(plan.plan_id, log_dir=output_dir / "logs") as log:
            log.info("Executing", tasks=4, workers=2)
            log.task("gpt-4o", "query_001.md").error("Task failed", error="timeout")
    """

    def __init__(
        self,
        plan_id: str,
        log_dir: Optional[Path] = None,
        filename: str = "exec.jsonl",
        console_output: bool = False,
        level: str = "INFO",
    ):
        self.plan_id = plan_id
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.filename = filename
        self.console_output = console_output
        self.level = level

        self.log_file: Optional[Path] = None
        self._logger: Optional[logging.Logger] = None

    def _get_logger(self) -> logging.Logger:
        if self._logger is not None:
            return self._logger

        logger = logging.getLogger(f"tuna.run.{self.plan_id}.{id(self)}")
        logger.setLevel(getattr(logging, self.level.upper()))
        logger.propagate = False

        if self.console_output:
            console = logging.StreamHandler(sys.stderr)
            console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
            logger.addHandler(console)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / self.filename
            json_lines = _FlushingFileHandler(self.log_file, mode='a', encoding='utf-8')
            json_lines.setFormatter(JSONLineFormatter())
            logger.addHandler(json_lines)

        if not logger.handlers:
            logger.addHandler(logging.NullHandler())

        self._logger = logger
        return logger

    def log(self, level: int, message: str, exc_info: bool = False, **fields):
        fields = {'plan_id': self.plan_id, **fields}
        self._get_logger().log(level, message, exc_info=exc_info, extra={'fields': fields})

    def debug(self, message: str, **fields):
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields):
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields):
        self.log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields):
        self.log(logging.ERROR, message, **fields)

    def task(self, model: str, query_id: str) -> "TaskLog":
        return TaskLog(self, model, query_id)

    def close(self):
        if self._logger is None:
            return
        for handler in self._logger.handlers[:]:
            handler.close()
            self._logger.removeHandler(handler)
        self._logger = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class TaskLog:
    """RunLogger view bound to one task."""

    def __init__(self, run: RunLogger, model: str, query_id: str):
        self.run = run
        self.model = model
        self.query_id = query_id

    def info(self, message: str, **fields):
        self.run.info(message, model=self.model, query_id=self.query_id, **fields)

    def warning(self, message: str, **fields):
        self.run.warning(message, model=self.model, query_id=self.query_id, **fields)

    def error(self, message: str, **fields):
        self.run.error(message, model=self.model, query_id=self.query_id, **fields)
