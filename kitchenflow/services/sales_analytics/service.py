"""
SalesAnalytics — Service Layer
Aggregates non-cancelled orders of a day or month into an item sales report.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from kitchenflow.core.config import get_settings
from kitchenflow.services.order_scheduler.schemas import Order, OrderStatus
from kitchenflow.services.sales_analytics.schemas import ItemSales, SalesReport, Timeframe

logger = logging.getLogger(__name__)

Period = Union[date, datetime, str]


class SalesAnalyticsService:
    """Item-level sales aggregation for the vendor sales page."""

    def __init__(self, timezone_name: Optional[str] = None) -> None:
        self._tz = ZoneInfo(timezone_name or get_settings().kitchen_timezone)

    def summarize_sales(
        self,
        orders: Iterable[Union[Order, Mapping]],
        timeframe: Timeframe,
        period: Period,
    ) -> SalesReport:
        """Build the sales report for ``period``.

        ``period`` is a date (or ``YYYY-MM-DD``) for daily reports and a date
        or ``YYYY-MM`` string for monthly ones. Cancelled orders are excluded.
        """
        timeframe = Timeframe(timeframe)
        key, label = self._period_key(timeframe, period)

        parsed = [o if isinstance(o, Order) else Order.model_validate(o) for o in orders]
        in_period = [o for o in parsed if self._order_key(o, timeframe) == key]
        if not in_period:
            logger.warning("No orders found for the selected %s (%s)", timeframe.value, label)
            return SalesReport(timeframe=timeframe, period_label=label)

        sales: dict[str, ItemSales] = {}
        total_orders = 0
        total_revenue = 0.0

        for order in in_period:
            if order.status == OrderStatus.CANCELLED:
                continue
            total_orders += 1
            for item in order.items:
                name = item.name or item.type or "Unknown"
                price = item.price or 0.0
                revenue = price * item.effective_quantity

                entry = sales.setdefault(name, ItemSales(name=name, unit_price=price))
                entry.quantity += item.effective_quantity
                entry.revenue += revenue
                entry.order_count += 1
                total_revenue += revenue

        for entry in sales.values():
            entry.revenue = round(entry.revenue, 2)
            entry.average_per_order = round(entry.quantity / entry.order_count, 2)

        return SalesReport(
            timeframe=timeframe,
            period_label=label,
            total_orders=total_orders,
            total_revenue=round(total_revenue, 2),
            items=sorted(sales.values(), key=lambda s: s.quantity, reverse=True),
        )

    def _order_key(self, order: Order, timeframe: Timeframe) -> tuple[int, ...]:
        local = order.created_at.astimezone(self._tz)
        if timeframe == Timeframe.DAY:
            return (local.year, local.month, local.day)
        return (local.year, local.month)

    @staticmethod
    def _period_key(timeframe: Timeframe, period: Period) -> tuple[tuple[int, ...], str]:
        if isinstance(period, str):
            fmt = "%Y-%m-%d" if timeframe == Timeframe.DAY else "%Y-%m"
            try:
                period = datetime.strptime(period, fmt).date()
            except ValueError as exc:
                raise ValueError(f"Invalid {timeframe.value} period: {period!r}") from exc

        if timeframe == Timeframe.DAY:
            return (period.year, period.month, period.day), period.strftime("%Y-%m-%d")
        return (period.year, period.month), period.strftime("%B %Y")


# Singleton
sales_analytics_service = SalesAnalyticsService()
