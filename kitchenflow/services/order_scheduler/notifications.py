"""
OrderScheduler — Delay Notifications
Formats delay reports into kitchen-facing messages.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from kitchenflow.core.clock import Clock, utc_now
from kitchenflow.services.order_scheduler.schemas import (
    DelayNotification,
    DelayReport,
    DelaySeverity,
)

ACTION_MESSAGES = {
    DelaySeverity.HIGH: "Immediate attention required!",
    DelaySeverity.MEDIUM: "Please prioritize",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_delay_message(report: DelayReport) -> str:
    message = (
        f"Order #{report.order.id[-6:]} is experiencing delays "
        f"({round_half_up(report.hours_since_creation * 60)} minutes old)"
    )
    if report.estimated_delay > 0:
        message += f". Estimated additional delay: {round_half_up(report.estimated_delay)} minutes"
    return f"{message} - {ACTION_MESSAGES[report.severity]}"


def generate_delay_notifications(
    delayed_orders: Iterable[DelayReport],
    clock: Optional[Clock] = None,
) -> list[DelayNotification]:
    """Build one notification per delay report, in report order."""
    timestamp = (clock or utc_now)()
    return [
        DelayNotification(
            order_id=report.order.id,
            message=format_delay_message(report),
            severity=report.severity,
            timestamp=timestamp,
            estimated_delay=report.estimated_delay,
            hours_since_creation=report.hours_since_creation,
        )
        for report in delayed_orders
    ]
