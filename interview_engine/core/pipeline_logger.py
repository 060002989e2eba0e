"""Structured logging and diagnostics for generation runs.

Provides:
- PipelineLogger: consistent run/phase logging on top of the logging module,
  with optional console and file handlers
- RunDiagnostics: structured records (strategy chosen, items dropped, repair
  steps applied, retries, failures) returned on the result and mirrored to
  the logger, so nothing depends on reading console output
"""

import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


class PipelineLogger:
    """Structured logger for generation runs."""

    def __init__(
        self,
        name: str = "interview_engine",
        verbose: bool = False,
        log_dir: str | Path | None = None,
        console: bool = False,
    ):
        """Initialize the logger.

        Args:
            name: Logger name.
            verbose: If True, show DEBUG level logs on the console.
            log_dir: Directory for log files. If None, no file logging.
            console: Attach a stdout handler (the CLI does; library callers
                     normally configure logging themselves).
        """
        self.logger = logging.getLogger(name)
        self.verbose = verbose
        self._phase: str = ""
        self._phase_start: float = 0
        self._run_start: float = 0
        self._log_file: Path | None = None
        self._log_dir = Path(log_dir) if log_dir else None
        self._tick_count: int = 0
        self._tick_total: int = 0

        if console and not any(isinstance(h, _ConsoleHandler) for h in self.logger.handlers):
            console_handler = _ConsoleHandler(sys.stdout)
            console_handler.setFormatter(ConsoleFormatter())
            console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
            self.logger.addHandler(console_handler)

        self.logger.setLevel(logging.DEBUG)

    def set_verbose(self, verbose: bool):
        """Update verbose setting."""
        self.verbose = verbose
        for handler in self.logger.handlers:
            if isinstance(handler, _ConsoleHandler):
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    def _ts(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _elapsed(self) -> str:
        if self._phase_start:
            return f"{time.time() - self._phase_start:.1f}s"
        return ""

    def _total_elapsed(self) -> str:
        if self._run_start:
            elapsed = time.time() - self._run_start
            mins = int(elapsed // 60)
            secs = elapsed % 60
            if mins > 0:
                return f"{mins}m {secs:.0f}s"
            return f"{secs:.1f}s"
        return ""

    def start_run(self, label: str):
        """Mark run start and set up file logging."""
        self._run_start = time.time()

        if self._log_dir and self._log_file is None:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self._log_file = self._log_dir / f"{label}_{timestamp}.log"

            file_handler = logging.FileHandler(self._log_file, encoding="utf-8")
            file_handler.setFormatter(FileFormatter())
            file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(file_handler)

        self.logger.info(f"[{self._ts()}] Starting run: {label}")

    def end_run(self, success: bool = True, stats: dict | None = None):
        """Mark run end."""
        elapsed = self._total_elapsed()
        status = "COMPLETE" if success else "FAILED"

        if stats:
            self.summary(stats)

        self.logger.info(f"Run {status} [{elapsed}]")
        if self._log_file:
            self.logger.info(f"Log: {self._log_file}")

    def start_phase(self, phase: str, total: int = 0):
        """Start a new phase; total is its chunk count."""
        self._phase = phase
        self._phase_start = time.time()
        self._tick_count = 0
        self._tick_total = total
        self.logger.info(f"{phase.upper()} ({total} chunks)" if total > 0 else phase.upper())

    def tick(self, item: str = ""):
        """Progress line for one finished chunk, e.g. ``[3/6] chunk 3 (12.3s)``."""
        self._tick_count += 1
        if self._tick_total <= 0:
            return
        label = f"[{self._tick_count}/{self._tick_total}] {item}".rstrip()
        self.logger.info(f"  {label} ({time.time() - self._phase_start:.1f}s)")

    def _emit(self, level: int, template: str, message: str, data: dict[str, Any]):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.log(level, template.format(ts=self._ts(), message=message))

    def debug(self, message: str, **data):
        """Verbose-only detail, e.g. per-chunk diagnostics."""
        self._emit(logging.DEBUG, "[{ts}] {message}", message, data)

    def info(self, message: str, **data):
        self._emit(logging.INFO, "  {message}", message, data)

    def warning(self, message: str, **data):
        self._emit(logging.WARNING, "[{ts}] WARN: {message}", message, data)

    def error(self, message: str, exc: Exception | None = None, **data):
        if exc:
            data = {**data, "exception": f"{type(exc).__name__}: {exc}"}
        self._emit(logging.ERROR, "[{ts}] ERROR: {message}", message, data)

    def milestone(self, message: str, **data):
        """Run-level outcome such as the final coverage."""
        self._emit(logging.INFO, "  -> {message}", message, data)

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

    def phase_result(self, phase: str, result: str, **metrics):
        """Log phase completion with key metrics."""
        elapsed = self._elapsed()
        parts = [result]
        if metrics:
            parts.append(", ".join(f"{k}={v}" for k, v in metrics.items()))
        if elapsed:
            parts.append(f"[{elapsed}]")
        self.logger.info(f"  Done: {' | '.join(parts)}")
        self._phase = ""


class _ConsoleHandler(logging.StreamHandler):
    """Marker subclass so set_verbose() only touches our console handler."""


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


# =============================================================================
# Structured diagnostics
# =============================================================================


@dataclass
class DiagnosticRecord:
    """One structured event of a run."""

    event: str
    phase: str
    chunk_index: int | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "event": self.event,
            "phase": self.phase,
            "chunk_index": self.chunk_index,
            "data": self.data,
        }


_WARNING_EVENTS = frozenset({
    "items_dropped", "chunk_failed", "anomaly_rejected", "coverage_gap", "cancelled",
})


@dataclass
class RunDiagnostics:
    """Collects DiagnosticRecords for one run and mirrors them to a logger."""

    logger: PipelineLogger | None = None
    records: list[DiagnosticRecord] = field(default_factory=list)

    def record(self, event: str, phase: str, chunk_index: int | None = None, **data) -> DiagnosticRecord:
        entry = DiagnosticRecord(event=event, phase=phase, chunk_index=chunk_index, data=data)
        self.records.append(entry)
        if self.logger:
            label = f"{phase}: {event}" if chunk_index is None else f"{phase}: {event} (chunk {chunk_index})"
            if event in _WARNING_EVENTS:
                self.logger.warning(label, **data)
            else:
                self.logger.debug(label, **data)
        return entry

    def events(self, event: str) -> list[DiagnosticRecord]:
        """All records of one event type, in emission order."""
        return [r for r in self.records if r.event == event]

    def to_list(self) -> list[dict]:
        return [r.to_dict() for r in self.records]


# Global logger instance
_logger: PipelineLogger | None = None


def get_logger(
    verbose: bool = False,
    log_dir: str | Path | None = None,
    console: bool = False,
) -> PipelineLogger:
    """Get or create the global run logger.

    Args:
        verbose: If True, show DEBUG level logs in console.
        log_dir: Directory for log files. If provided and logger already exists,
                 updates the log directory for future file logging.
        console: Attach a console handler on first creation.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir, console=console)
    else:
        if verbose and not _logger.verbose:
            _logger.set_verbose(True)
        if log_dir and not _logger._log_dir:
            _logger._log_dir = Path(log_dir)
    return _logger


def reset_logger():
    """Reset the global logger (for testing)."""
    global _logger
    if _logger:
        for handler in _logger.logger.handlers[:]:
            if isinstance(handler, (logging.FileHandler, _ConsoleHandler)):
                handler.close()
                _logger.logger.removeHandler(handler)
    _logger = None
