"""
OrderScheduler — Service Layer
Ranks kitchen orders, estimates preparation time, computes pickup windows,
and detects delayed orders for a single order snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any, Optional, Union

import numpy as np
from pydantic import ValidationError

from kitchenflow.core.clock import Clock, ensure_aware, utc_now
from kitchenflow.core.exceptions import (
    DelayDetectionError,
    InvalidOrderData,
    InvalidOrdersFormat,
    PickupWindowError,
    PreparationTimeError,
    PriorityCalculationError,
)
from kitchenflow.core.observability import DELAYED_ORDERS, track_operation
from kitchenflow.services.order_scheduler.notifications import generate_delay_notifications
from kitchenflow.services.order_scheduler.schemas import (
    DelayReport,
    DelaySeverity,
    KitchenDashboard,
    Order,
    OrderStatus,
    PickupWindow,
    ScheduledOrder,
    SchedulingConfig,
    UrgencyLevel,
)
from kitchenflow.services.order_scheduler.workload import analyze_kitchen_workload

logger = logging.getLogger(__name__)

# Preparation-time modifiers
SPECIAL_INSTRUCTIONS_FACTOR = 1.2
RUSH_FACTOR = 0.8
LARGE_ORDER_FACTOR = 1.1
LARGE_ORDER_ITEMS = 5
KITCHEN_LOAD_FACTOR = 0.1

REQUIRED_FIELDS = (("id", "id"), ("status", "status"), ("createdAt", "created_at"))

OrderInput = Union[Order, Mapping[str, Any]]


def parse_order(raw: OrderInput, index: Optional[int] = None) -> Order:
    """Turn a store record into an ``Order``, failing fast on missing fields."""
    if isinstance(raw, Order):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidOrderData(
            "Invalid order format",
            details={"order_index": index, "order_id": None},
        )

    order_id = raw.get("id")
    missing = [
        alias for alias, name in REQUIRED_FIELDS
        if not raw.get(alias, raw.get(name))
    ]
    if not isinstance(raw.get("items"), (list, tuple)):
        missing.append("items")
    if missing:
        raise InvalidOrderData(
            "Invalid order format",
            details={"order_index": index, "order_id": order_id, "missing_fields": missing},
        )

    try:
        return Order.model_validate(raw)
    except ValidationError as exc:
        raise InvalidOrderData(
            "Invalid order format",
            details={
                "order_index": index,
                "order_id": order_id,
                "errors": exc.errors(include_url=False, include_input=False),
            },
        ) from exc


class OrderScheduler:
    """Scheduling engine bound to one order snapshot.

    Preparation-time estimates are cached per order id for the lifetime of the
    instance and never invalidated. Build a new scheduler for every freshly
    fetched snapshot; an instance must not be shared across requests.
    """

    def __init__(
        self,
        orders: Sequence[OrderInput],
        config: Union[SchedulingConfig, Mapping[str, Any], None] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.orders: list[Order] = self._validate_orders(orders)
        self.config = self._resolve_config(config)
        self.clock: Clock = clock or utc_now
        self.preparation_times: dict[str, float] = {}

    @staticmethod
    def _validate_orders(orders: Any) -> list[Order]:
        if isinstance(orders, (str, bytes)) or not isinstance(orders, Sequence):
            raise InvalidOrdersFormat(
                "Orders must be a sequence",
                details={"received_type": type(orders).__name__},
            )
        return [parse_order(raw, index) for index, raw in enumerate(orders)]

    @staticmethod
    def _resolve_config(
        config: Union[SchedulingConfig, Mapping[str, Any], None],
    ) -> SchedulingConfig:
        if config is None:
            return SchedulingConfig.from_settings()
        if isinstance(config, SchedulingConfig):
            return config
        return SchedulingConfig.merged(config)

    def _now(self) -> datetime:
        return ensure_aware(self.clock())

    def _coerce(self, order: OrderInput) -> Order:
        return parse_order(order)

    @staticmethod
    def hours_since_creation(order: Order, now: datetime) -> float:
        return (now - order.created_at).total_seconds() / 3600

    # ── Priority ──

    def priority_score(self, order: OrderInput, now: Optional[datetime] = None) -> float:
        """Higher scores are served first."""
        order = self._coerce(order)
        now = now or self._now()
        try:
            weights = self.config.priority_weights

            score = self.hours_since_creation(order, now) * weights.time_factor
            score += weights.status_weights[order.status]
            score += (order.total or 0) * weights.total_amount_factor
            score += order.item_count * weights.item_count_factor

            if order.is_vip:
                score *= weights.vip_multiplier
            if order.has_special_instructions:
                score -= weights.special_instructions_penalty

            return float(score)
        except Exception as exc:
            raise PriorityCalculationError(
                "Error calculating priority score",
                details={"order_id": order.id, "original_error": str(exc)},
            ) from exc

    def scored_orders(self) -> list[tuple[Order, float]]:
        """(order, score) pairs by descending score; ties keep snapshot order."""
        with track_operation("prioritize_orders"):
            now = self._now()
            scored = [(order, self.priority_score(order, now)) for order in self.orders]
            return sorted(scored, key=lambda pair: pair[1], reverse=True)

    def prioritize_orders(self) -> list[Order]:
        return [order for order, _ in self.scored_orders()]

    # ── Preparation time ──

    def estimate_preparation_time(self, order: OrderInput) -> float:
        """Minutes until the order is ready, cached by order id."""
        order = self._coerce(order)
        cached = self.preparation_times.get(order.id)
        if cached is not None:
            return cached

        try:
            table = self.config.preparation_times
            total = 0.0
            for item in order.items:
                base = table.get(item.category, table["DEFAULT"])
                # Bulk quantities scale sub-linearly
                total += base * float(np.log2(item.effective_quantity + 1))

            if order.has_special_instructions:
                total *= SPECIAL_INSTRUCTIONS_FACTOR
            if order.is_rush:
                total *= RUSH_FACTOR
            if order.item_count > LARGE_ORDER_ITEMS:
                total *= LARGE_ORDER_FACTOR

            simultaneous = sum(
                1 for other in self.orders
                if other.status == OrderStatus.PROCESSING and other.id != order.id
            )
            total *= 1 + simultaneous * KITCHEN_LOAD_FACTOR

            thresholds = self.config.time_thresholds
            minutes = float(np.clip(
                total,
                thresholds.min_preparation_minutes,
                thresholds.max_preparation_minutes,
            ))
        except Exception as exc:
            raise PreparationTimeError(
                "Error estimating preparation time",
                details={"order_id": order.id, "original_error": str(exc)},
            ) from exc

        self.preparation_times[order.id] = minutes
        return minutes

    # ── Pickup window ──

    def busy_period_buffer(self, moment: datetime) -> float:
        """Extra minutes for the first busy period containing the local hour of ``moment``."""
        hour = ensure_aware(moment).astimezone(self.config.tzinfo).hour
        for period in self.config.busy_periods:
            if period.contains(hour):
                return period.buffer_minutes
        return 0.0

    def calculate_pickup_window(self, order: OrderInput) -> PickupWindow:
        order = self._coerce(order)
        try:
            preparation_time = self.estimate_preparation_time(order)
            estimated_ready = self._now() + timedelta(minutes=preparation_time)
            latest_pickup = estimated_ready + timedelta(
                minutes=self.config.time_thresholds.pickup_window_minutes
            )

            buffer = self.busy_period_buffer(estimated_ready)
            if buffer > 0:
                estimated_ready += timedelta(minutes=buffer)
                latest_pickup += timedelta(minutes=buffer)

            return PickupWindow(
                estimated_ready_time=estimated_ready,
                latest_pickup_time=latest_pickup,
                preparation_time=preparation_time,
                buffer_applied=buffer,
            )
        except Exception as exc:
            raise PickupWindowError(
                "Error calculating pickup window",
                details={"order_id": order.id, "original_error": str(exc)},
            ) from exc

    # ── Delays ──

    def estimate_delay(self, order: OrderInput) -> float:
        """Minutes from now until the order's estimated ready time, floored at 0."""
        window = self.calculate_pickup_window(order)
        remaining = (window.estimated_ready_time - self._now()).total_seconds() / 60
        return max(0.0, remaining)

    def _is_delayed(self, order: Order, hours: float) -> bool:
        thresholds = self.config.time_thresholds
        if order.status == OrderStatus.PENDING:
            return hours > thresholds.pending_delay_hours
        if order.status == OrderStatus.PROCESSING:
            return hours > thresholds.processing_delay_hours
        return False

    def detect_potential_delays(self) -> list[DelayReport]:
        """Active orders that have waited past their status threshold, in snapshot order."""
        with track_operation("detect_potential_delays"):
            current: Optional[Order] = None
            try:
                now = self._now()
                high_after = self.config.time_thresholds.high_severity_hours
                delayed = []

                for current in self.orders:
                    hours = self.hours_since_creation(current, now)
                    if not self._is_delayed(current, hours):
                        continue
                    delayed.append(DelayReport(
                        order=current,
                        hours_since_creation=hours,
                        severity=DelaySeverity.HIGH if hours > high_after else DelaySeverity.MEDIUM,
                        estimated_delay=self.estimate_delay(current),
                    ))
            except Exception as exc:
                raise DelayDetectionError(
                    "Error detecting delays",
                    details={
                        "order_id": current.id if current else None,
                        "original_error": str(exc),
                    },
                ) from exc

            for severity in DelaySeverity:
                DELAYED_ORDERS.labels(severity=severity.value).set(
                    sum(1 for d in delayed if d.severity == severity)
                )
            if delayed:
                logger.info("Detected %d delayed orders out of %d", len(delayed), len(self.orders))

            return delayed

    # ── Dashboard ──

    def urgency_level(self, order: OrderInput) -> UrgencyLevel:
        """Badge shown on the vendor dashboard; only processing orders escalate."""
        order = self._coerce(order)
        if order.status != OrderStatus.PROCESSING:
            return UrgencyLevel.LOW

        minutes = self.hours_since_creation(order, self._now()) * 60
        thresholds = self.config.urgency_thresholds
        if minutes > thresholds.high_minutes:
            return UrgencyLevel.HIGH
        if minutes > thresholds.medium_minutes:
            return UrgencyLevel.MEDIUM
        return UrgencyLevel.LOW

    def build_dashboard(self) -> KitchenDashboard:
        """Everything a kitchen screen renders for this snapshot."""
        with track_operation("build_dashboard"):
            generated_at = self._now()
            delays = self.detect_potential_delays()

            queue = []
            for order, score in self.scored_orders():
                entry = ScheduledOrder(
                    order_id=order.id,
                    status=order.status,
                    priority_score=score,
                    urgency=self.urgency_level(order),
                )
                if order.is_active:
                    entry.preparation_time = self.estimate_preparation_time(order)
                    entry.pickup_window = self.calculate_pickup_window(order)
                queue.append(entry)

            return KitchenDashboard(
                generated_at=generated_at,
                queue=queue,
                delays=delays,
                notifications=generate_delay_notifications(delays, clock=self.clock),
                workload=analyze_kitchen_workload(self.orders),
            )
