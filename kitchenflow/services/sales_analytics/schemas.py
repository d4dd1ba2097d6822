"""
SalesAnalytics — Pydantic Schemas
Per-item sales aggregation for a day or month.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from kitchenflow.services.order_scheduler.schemas import CamelModel


class Timeframe(str, Enum):
    DAY = "day"
    MONTH = "month"


class ItemSales(CamelModel):
    name: str
    quantity: int = 0
    unit_price: float = 0.0
    revenue: float = 0.0
    order_count: int = 0
    average_per_order: float = 0.0


class SalesReport(CamelModel):
    timeframe: Timeframe
    period_label: str
    total_orders: int = 0
    total_revenue: float = 0.0
    items: list[ItemSales] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
