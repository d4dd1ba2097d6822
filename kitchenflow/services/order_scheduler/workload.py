"""
OrderScheduler — Kitchen Workload Analytics
Composite workload score over active orders with staffing recommendations.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Union

from kitchenflow.core.observability import KITCHEN_WORKLOAD_SCORE, track_operation
from kitchenflow.services.order_scheduler.schemas import (
    Order,
    WorkloadEntry,
    WorkloadLevel,
    WorkloadSummary,
)

logger = logging.getLogger(__name__)

ORDER_WEIGHT = 10
COMPLEXITY_WEIGHT = 5
SPECIAL_INSTRUCTIONS_COMPLEXITY = 1.5

# Lower bounds (exclusive) of each level, checked from the top
WORKLOAD_LEVELS = [
    (100, WorkloadLevel.CRITICAL),
    (70, WorkloadLevel.HIGH),
    (40, WorkloadLevel.MODERATE),
]

RECOMMENDED_ACTIONS: dict[WorkloadLevel, tuple[str, ...]] = {
    WorkloadLevel.CRITICAL: (
        "Consider temporarily pausing new orders",
        "Call in additional staff if available",
        "Focus on completing simple orders first to reduce queue",
    ),
    WorkloadLevel.HIGH: (
        "Prepare for potential staff reallocation",
        "Review and prioritize orders by complexity",
        "Consider extending estimated preparation times",
    ),
}


def calculate_workload_score(order_count: int, complexity_score: float) -> float:
    return order_count * ORDER_WEIGHT + complexity_score * COMPLEXITY_WEIGHT


def classify_workload(workload_score: float) -> WorkloadLevel:
    for threshold, level in WORKLOAD_LEVELS:
        if workload_score > threshold:
            return level
    return WorkloadLevel.NORMAL


def recommend_actions(level: WorkloadLevel) -> list[str]:
    return list(RECOMMENDED_ACTIONS.get(level, ()))


def analyze_kitchen_workload(
    orders: Iterable[Union[Order, WorkloadEntry, Mapping]],
) -> WorkloadSummary:
    """Summarize the load that pending and processing orders put on the kitchen.

    Independent of any scheduler instance and nothing is cached. Mappings are
    read as partial records: only ``status``, ``items`` and
    ``specialInstructions`` are looked at, so ids and timestamps may be absent.
    """
    with track_operation("analyze_kitchen_workload"):
        parsed = [
            o if isinstance(o, (Order, WorkloadEntry)) else WorkloadEntry.model_validate(o)
            for o in orders
        ]
        active = [o for o in parsed if o.is_active]

        total_items = sum(
            item.effective_quantity for order in active for item in order.items
        )
        complexity_score = sum(
            order.item_count * (SPECIAL_INSTRUCTIONS_COMPLEXITY if order.has_special_instructions else 1)
            for order in active
        )

        workload_score = calculate_workload_score(len(active), complexity_score)
        level = classify_workload(workload_score)
        KITCHEN_WORKLOAD_SCORE.set(workload_score)

        if level == WorkloadLevel.CRITICAL:
            logger.warning(
                "Kitchen workload CRITICAL (score=%.1f, active_orders=%d)",
                workload_score,
                len(active),
            )

        return WorkloadSummary(
            active_order_count=len(active),
            total_items=total_items,
            complexity_score=float(complexity_score),
            workload_score=float(workload_score),
            workload_level=level,
            recommended_actions=recommend_actions(level),
        )
