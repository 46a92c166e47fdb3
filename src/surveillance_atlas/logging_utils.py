"""
JSONL structured logging utilities.

Each pipeline run writes one JSONL log file under logs/, alongside a
human-readable console stream. Every entry carries the run_id, level,
logger name and message, plus an optional event_type and context dict
so downstream tooling can filter step, QA and output events.
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from surveillance_atlas.paths import paths, ensure_dir


def generate_run_id() -> str:
    """Generate a run ID of the form YYYYMMDD_HHMMSS_<short_uuid>."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{timestamp}_{uuid.uuid4().hex[:8]}"


class JSONLHandler(logging.Handler):
    """A logging handler that appends structured JSON lines to a file."""

    def __init__(self, log_path: Path, run_id: str):
        super().__init__()
        self.log_path = log_path
        self.run_id = run_id
        self._file = None

    def _ensure_file(self):
        if self._file is None:
            ensure_dir(self.log_path.parent)
            self._file = open(self.log_path, "a", encoding="utf-8")

    def emit(self, record: logging.LogRecord):
        try:
            self._ensure_file()

            entry = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "run_id": self.run_id,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            if hasattr(record, "event_type"):
                entry["event_type"] = record.event_type
            if hasattr(record, "context"):
                entry["context"] = record.context
            if record.exc_info:
                entry["exception"] = self.format(record)

            self._file.write(json.dumps(entry, default=str) + "\n")
            self._file.flush()

        except Exception:
            self.handleError(record)

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None
        super().close()


_LOGGERS: dict[str, logging.Logger] = {}
_RUN_ID: str | None = None


def get_run_id() -> str:
    """Get the current run ID, generating one if needed."""
    global _RUN_ID
    if _RUN_ID is None:
        _RUN_ID = generate_run_id()
    return _RUN_ID


def set_run_id(run_id: str) -> None:
    """Pin the run ID; get_logger does this when given an explicit run_id."""
    global _RUN_ID
    _RUN_ID = run_id


def get_logger(
    script_name: str,
    run_id: str | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_dir: Path | None = None,
) -> logging.Logger:
    """
    Get or create a logger for a pipeline step.

    Creates a console handler and a JSONL file handler writing to
    `<log_dir>/<script_name>_<run_id>.jsonl` (log_dir defaults to logs/).

    Args:
        script_name: Name of the step (e.g., "01_build_tract_table").
        run_id: Optional run ID; if None, generates or reuses the current one.
        console_level: Logging level for console output.
        file_level: Logging level for JSONL output.
        log_dir: Override for the log directory.

    Returns:
        Configured Logger instance.
    """
    if run_id is None:
        run_id = get_run_id()
    else:
        set_run_id(run_id)

    logger_key = f"{script_name}_{run_id}"
    if logger_key in _LOGGERS:
        return _LOGGERS[logger_key]

    logger = logging.getLogger(logger_key)
    logger.setLevel(min(console_level, file_level))
    logger.handlers = []
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(console_handler)

    log_file = Path(log_dir or paths.logs) / f"{script_name}_{run_id}.jsonl"
    jsonl_handler = JSONLHandler(log_file, run_id)
    jsonl_handler.setLevel(file_level)
    logger.addHandler(jsonl_handler)

    _LOGGERS[logger_key] = logger

    logger.info(f"Logger initialized for {script_name}", extra={
        "event_type": "logger_init",
        "context": {"script_name": script_name, "run_id": run_id}
    })

    return logger


def log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    event_type: str,
    **context: Any
) -> None:
    """Log a structured event with a type and context."""
    logger.log(level, message, extra={"event_type": event_type, "context": context})


def log_step_start(logger: logging.Logger, step_name: str, **context: Any) -> None:
    log_event(logger, logging.INFO, f"Starting: {step_name}", "step_start",
              step_name=step_name, **context)


def log_step_end(logger: logging.Logger, step_name: str, **context: Any) -> None:
    log_event(logger, logging.INFO, f"Completed: {step_name}", "step_end",
              step_name=step_name, **context)


def log_qa_check(
    logger: logging.Logger,
    check_name: str,
    passed: bool,
    details: str | None = None,
    **context: Any
) -> None:
    """Log a QA check result at INFO (passed) or ERROR (failed)."""
    status = "PASSED" if passed else "FAILED"
    message = f"QA Check [{check_name}]: {status}"
    if details:
        message += f" - {details}"

    log_event(logger, logging.INFO if passed else logging.ERROR, message, "qa_check",
              check_name=check_name, passed=passed, details=details, **context)


def log_output_written(
    logger: logging.Logger,
    output_path: str | Path,
    row_count: int | None = None,
    **context: Any
) -> None:
    """Log that an output file was written."""
    message = f"Output written: {output_path}"
    if row_count is not None:
        message += f" ({row_count:,} rows)"

    log_event(logger, logging.INFO, message, "output_written",
              output_path=str(output_path), row_count=row_count, **context)
