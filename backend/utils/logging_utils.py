"""
Logging helpers for pipeline stages

Stages log a start and an end line carrying structured context (document,
page and sheet counts) so a single request can be followed through the log.
"""

import time
import logging
from typing import Dict, Any, Iterator, Optional
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class Timer:
    """Wall-clock timer for a whole request; readable while still running."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.started_at: Optional[float] = None
        self.stopped_at: Optional[float] = None

    def __enter__(self):
        self.started_at = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stopped_at = time.monotonic()
        status = "failed" if exc_type else "finished"
        self.logger.info(f"{self.name} {status} in {self.elapsed_ms}ms")

    @property
    def elapsed_ms(self) -> int:
        if self.started_at is None:
            return 0
        end = self.stopped_at if self.stopped_at is not None else time.monotonic()
        return int((end - self.started_at) * 1000)


@contextmanager
def log_stage(stage: str, context: Dict[str, Any], logger: Optional[logging.Logger] = None) -> Iterator[Dict[str, Any]]:
    """
    Log the start, outcome and duration of a pipeline stage.

    Yields the context dict; keys the stage adds (e.g. room counts) are
    included in the completion line.

    Usage:
        with log_stage("page_classification", {"pages": 12}, logger) as stage:
            classifications = await classify_pages(...)
            stage["floor_plans"] = 3
    """
    logger = logger or logging.getLogger(__name__)
    started_at = time.monotonic()
    logger.info(f"Starting {stage}", extra={'stage': stage, 'context': dict(context), 'status': 'started'})

    try:
        yield context
    except Exception as e:
        duration = time.monotonic() - started_at
        logger.error(f"{stage} failed after {duration:.2f}s: {e}", extra={
            'stage': stage,
            'context': context,
            'status': 'failed',
            'duration_seconds': duration,
            'error_type': type(e).__name__,
        })
        raise

    duration = time.monotonic() - started_at
    summary = ", ".join(f"{key}={value}" for key, value in context.items())
    logger.info(f"{stage} done in {duration:.2f}s ({summary})", extra={
        'stage': stage,
        'context': context,
        'status': 'completed',
        'duration_seconds': duration,
    })


def log_with_context(level: str, message: str, context: Dict[str, Any], logger: Optional[logging.Logger] = None):
    """Log at the named level with the context attached as structured extra"""
    logger = logger or logging.getLogger(__name__)
    log_func = getattr(logger, level.lower(), logger.info)
    log_func(message, extra={'context': context})


def log_performance_metric(metric_name: str, value: float, unit: str = "ms",
                           tags: Optional[Dict[str, str]] = None,
                           logger: Optional[logging.Logger] = None):
    """
    Log one performance metric.

    Args:
        metric_name: e.g. plan_parse_duration
        value: Metric value
        unit: Unit of measurement
        tags: Extraction method, document type and similar labels
        logger: Logger instance
    """
    logger = logger or logging.getLogger(__name__)
    tag_text = " ".join(f"{key}={tag_value}" for key, tag_value in (tags or {}).items())

    logger.info(f"[METRIC] {metric_name}: {value:.0f} {unit} {tag_text}".rstrip(), extra={
        'metric_name': metric_name,
        'metric_value': value,
        'metric_unit': unit,
        'tags': tags or {}
    })
