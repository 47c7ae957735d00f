"""Structured logging for the extraction pipeline.

Provides consistent logging with:
- Timestamps
- Log levels (DEBUG, INFO, WARNING, ERROR)
- Run/stage context tracking
- Structured key=value data
- Optional per-run file output for later analysis

One PipelineLogger is shared by every concurrent run, so it holds no run
timing. Callers pass elapsed times in; each run's file handler only accepts
records emitted while that run is the current one in the asyncio context.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any

_current_run: ContextVar[str | None] = ContextVar("pipeline_run_id", default=None)


class RunFilter(logging.Filter):
    """Pass only records emitted while ``run_id`` is the current run."""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        return _current_run.get() == self.run_id


class PipelineLogger:
    """Structured logger for extraction runs."""

    def __init__(self, name: str = "reservation_extractor.run", verbose: bool = False, log_dir: str | Path | None = None):
        """Initialize the pipeline logger.

        Args:
            name: Logger name.
            verbose: If True, show DEBUG level logs.
            log_dir: Directory for log files. If None, no file logging.
        """
        self.logger = logging.getLogger(name)
        self.verbose = verbose
        self._file_handlers: dict[str, tuple[Path, logging.FileHandler]] = {}
        self._log_dir = Path(log_dir) if log_dir else None

        if not self.logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(ConsoleFormatter())
            console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
            self.logger.addHandler(console_handler)

        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

    def set_verbose(self, verbose: bool):
        """Update verbose setting."""
        self.verbose = verbose
        for handler in self.logger.handlers:
            if isinstance(handler, logging.StreamHandler) and handler.stream == sys.stdout:
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    def _ts(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def start_run(self, run_id: str, source: str) -> Path | None:
        """Make ``run_id`` the current run and set up its log file.

        Returns:
            Path of the run's log file, or None without a log directory.
        """
        _current_run.set(run_id)
        log_file = None

        if self._log_dir and run_id not in self._file_handlers:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = self._log_dir / f"{Path(source).stem or 'document'}_{timestamp}_{run_id[:8]}.log"
            handler = logging.FileHandler(log_file, encoding="utf-8")
            handler.setFormatter(FileFormatter())
            handler.setLevel(logging.DEBUG)
            handler.addFilter(RunFilter(run_id))
            self.logger.addHandler(handler)
            self._file_handlers[run_id] = (log_file, handler)

        self.logger.info(f"[{self._ts()}] Starting run {run_id}: {source}")
        return log_file

    def end_run(self, run_id: str, status: str, elapsed: float | None = None, stats: dict | None = None):
        """Mark run end and detach the run's file handler."""
        if stats:
            self.summary(stats)
        timing = f" [{elapsed:.2f}s]" if elapsed is not None else ""
        self.logger.info(f"Run {run_id} {status.upper()}{timing}")

        entry = self._file_handlers.pop(run_id, None)
        if entry:
            log_file, handler = entry
            self.logger.info(f"Log: {log_file}")
            self.logger.removeHandler(handler)
            handler.close()
        if _current_run.get() == run_id:
            _current_run.set(None)

    def stage(self, name: str, detail: str = ""):
        """Start a new pipeline stage."""
        header = name.upper()
        if detail:
            header += f" ({detail})"
        self.logger.info(header)

    def stage_result(self, result: str, elapsed: float | None = None, **metrics):
        """Log stage completion with key metrics."""
        parts = [result]
        if metrics:
            parts.append(", ".join(f"{k}={v}" for k, v in metrics.items()))
        if elapsed is not None:
            parts.append(f"[{elapsed:.1f}s]")
        self.logger.info(f"  Done: {' | '.join(parts)}")

    def debug(self, message: str, **data):
        """Log debug message (only in verbose mode)."""
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.debug(f"[{self._ts()}] {message}")

    def info(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  {message}")

    def warning(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.warning(f"[{self._ts()}] WARN: {message}")

    def error(self, message: str, exc: Exception | None = None, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        if exc:
            message = f"{message} | {type(exc).__name__}: {exc}"
        self.logger.error(f"[{self._ts()}] ERROR: {message}")

    def milestone(self, message: str, **data):
        """Log a key decision (path chosen, provider used, status)."""
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  -> {message}")

    def summary(self, stats: dict):
        """Log a summary block for end-of-run stats."""
        lines = ["SUMMARY"]
        for key, value in stats.items():
            if isinstance(value, dict):
                lines.append(f"  {key}:")
                for k, v in value.items():
                    lines.append(f"    {k}: {v}")
            else:
                lines.append(f"  {key}: {value}")
        self.logger.info("\n".join(lines))


class ConsoleFormatter(logging.Formatter):
    """Console formatter - concise."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


class FileFormatter(logging.Formatter):
    """File formatter - includes full details for analysis."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = record.levelname[:4]
        return f"{ts} [{level}] {record.getMessage()}"


def _format_data(data: dict[str, Any]) -> str:
    """Format structured data for logging."""
    parts = []
    for k, v in data.items():
        if isinstance(v, str) and len(v) > 50:
            v = v[:47] + "..."
        elif isinstance(v, list) and len(v) > 5:
            v = f"[{len(v)} items]"
        parts.append(f"{k}={v}")
    return ", ".join(parts)


_logger: PipelineLogger | None = None


def get_logger(verbose: bool = False, log_dir: str | Path | None = None) -> PipelineLogger:
    """Get or create the shared pipeline logger.

    Args:
        verbose: If True, show DEBUG level logs in console.
        log_dir: Directory for per-run log files.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir)
    else:
        if verbose and not _logger.verbose:
            _logger.set_verbose(True)
        if log_dir and not _logger._log_dir:
            _logger._log_dir = Path(log_dir)
    return _logger


def reset_logger():
    """Reset the shared logger (for testing)."""
    global _logger
    if _logger:
        for handler in _logger.logger.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                _logger.logger.removeHandler(handler)
    _logger = None
