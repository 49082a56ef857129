"""
Advanced Logging Module

Structured logging for filtering runs:
- structlog over stdlib logging, rendered as console lines or JSON
- a run ID carried in context variables, so every event of one CLI run
  can be correlated
- timing of single steps such as fitting the clusterer
- record stream progress: records buffered vs. converted per batch
"""

import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "console": structlog.dev.ConsoleRenderer,
}


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[str] = None,
    service_name: str = "cluster-membership",
) -> None:
    """
    Route structlog events through stdlib logging.

    Events go to stderr so that datasets written to stdout stay clean.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" or "console"
        log_file: Optional file that receives a rotating copy of the log
        service_name: Added to every event as ``service``
    """
    level = getattr(logging, log_level.upper())
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=3)
        )
    logging.basicConfig(format="%(message)s", level=level, handlers=handlers)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
    processors.append(_RENDERERS[log_format]())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)


@contextmanager
def run_context(run_id: str) -> Iterator[None]:
    """
    Tag every event logged inside the block with ``run_id``.

    Example:
        with run_context("3f2a9c"):
            logger.info("filter_configured")  # includes run_id
    """
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def timed_operation(
    operation: str,
    logger: Any,
    item_count: Optional[int] = None,
    **context: Any,
) -> Iterator[None]:
    """
    Log how long a block took, or how it failed.

    Args:
        operation: Name logged as ``operation``
        logger: Logger receiving ``operation_completed`` / ``operation_failed``
        item_count: Records handled in the block, for a records-per-second rate
        **context: Extra event fields
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(
            "operation_failed",
            operation=operation,
            duration_seconds=round(time.perf_counter() - start, 3),
            error=str(e),
            error_type=type(e).__name__,
            **context,
        )
        raise

    duration = time.perf_counter() - start
    event = {"operation": operation, "duration_seconds": round(duration, 3), **context}
    if item_count:
        event["records"] = item_count
        if duration > 0:
            event["records_per_second"] = round(item_count / duration, 2)
    logger.info("operation_completed", **event)


class StreamProgress:
    """
    Counts records passing through a filter.

    A record is *buffered* when the filter holds it until the batch completes
    and *converted* when its output is available immediately. Progress is
    logged every ``log_interval`` records and at each batch boundary.
    """

    def __init__(self, filter_name: str, logger: Any, log_interval: int = 1000):
        self.filter_name = filter_name
        self.logger = logger
        self.log_interval = log_interval
        self.batch = 0
        self._reset()

    def _reset(self) -> None:
        self.buffered = 0
        self.converted = 0
        self._started = time.perf_counter()

    @property
    def submitted(self) -> int:
        return self.buffered + self.converted

    def record_submitted(self, converted: bool) -> None:
        """Count one input record; ``converted`` is the filter's input() result."""
        if converted:
            self.converted += 1
        else:
            self.buffered += 1

        if self.submitted % self.log_interval == 0:
            self.logger.info(
                "stream_progress",
                filter=self.filter_name,
                batch=self.batch,
                buffered=self.buffered,
                converted=self.converted,
            )

    def batch_finished(self, pending_output: int) -> None:
        """Log the batch boundary and start counting the next batch."""
        self.logger.info(
            "batch_completed",
            filter=self.filter_name,
            batch=self.batch,
            buffered=self.buffered,
            converted=self.converted,
            pending_output=pending_output,
            duration_seconds=round(time.perf_counter() - self._started, 3),
        )
        self.batch += 1
        self._reset()
