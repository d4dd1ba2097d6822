"""
KitchenFlow — Scheduling Error Taxonomy
Every error carries a machine-readable code and contextual details.
"""

from __future__ import annotations

from typing import Any, Optional


class OrderSchedulingError(Exception):
    """Base error for the order scheduling engine."""

    code = "ORDER_SCHEDULING_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    @property
    def order_id(self) -> Optional[str]:
        return self.details.get("order_id")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, details={self.details!r})"


class InvalidOrdersFormat(OrderSchedulingError):
    code = "INVALID_ORDERS_FORMAT"


class InvalidOrderData(OrderSchedulingError):
    code = "INVALID_ORDER_DATA"


class PriorityCalculationError(OrderSchedulingError):
    code = "PRIORITY_CALCULATION_ERROR"


class PreparationTimeError(OrderSchedulingError):
    code = "PREPARATION_TIME_ERROR"


class PickupWindowError(OrderSchedulingError):
    code = "PICKUP_WINDOW_ERROR"


class DelayDetectionError(OrderSchedulingError):
    code = "DELAY_DETECTION_ERROR"
