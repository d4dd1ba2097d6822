"""
KitchenFlow — Observability Setup
Metrics (Prometheus) and structured logging (structlog).
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator

import structlog
from prometheus_client import Counter, Gauge, Histogram, Info

from kitchenflow.core.config import get_settings

settings = get_settings()

# ── Prometheus Metrics ──
SCHEDULER_OPERATION_COUNT = Counter(
    "kitchenflow_scheduler_operations_total",
    "Total scheduler operations",
    ["operation", "outcome"],  # outcome: success/error
)

SCHEDULER_OPERATION_LATENCY = Histogram(
    "kitchenflow_scheduler_operation_latency_seconds",
    "Scheduler operation latency",
    ["operation"],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

DELAYED_ORDERS = Gauge(
    "kitchenflow_delayed_orders",
    "Delayed orders found in the latest snapshot",
    ["severity"],
)

KITCHEN_WORKLOAD_SCORE = Gauge(
    "kitchenflow_kitchen_workload_score",
    "Composite kitchen workload score of the latest analysis",
)

APP_INFO = Info(
    "kitchenflow_app",
    "KitchenFlow application information",
)


@contextmanager
def track_operation(operation: str) -> Iterator[None]:
    """Count and time a scheduler operation, labelling failures."""
    start = time.monotonic()
    try:
        yield
    except Exception:
        SCHEDULER_OPERATION_COUNT.labels(operation=operation, outcome="error").inc()
        raise
    else:
        SCHEDULER_OPERATION_COUNT.labels(operation=operation, outcome="success").inc()
    finally:
        SCHEDULER_OPERATION_LATENCY.labels(operation=operation).observe(time.monotonic() - start)


def setup_logging() -> None:
    """Configure structured logging with structlog."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Also configure standard logging to route through structlog
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )


def setup_observability() -> None:
    """Initialize all observability components."""
    setup_logging()

    APP_INFO.info(
        {
            "version": settings.app_version,
            "environment": settings.app_env.value,
        }
    )
