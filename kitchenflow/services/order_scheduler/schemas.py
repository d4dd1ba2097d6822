"""
OrderScheduler — Pydantic Schemas
Order snapshot records, scheduling configuration, and derived outputs.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from kitchenflow.core.clock import ensure_aware
from kitchenflow.core.config import AppSettings, get_settings


# ── Enums ──

class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PICKED_UP = "picked_up"


ACTIVE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})


class DelaySeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


class WorkloadLevel(str, Enum):
    NORMAL = "normal"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys used by the order store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Input Schemas ──

class OrderItem(CamelModel):
    """Line item of an order."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: Optional[str] = None
    name: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = None

    @property
    def effective_quantity(self) -> int:
        return self.quantity or 1

    @property
    def category(self) -> str:
        """Preparation-time table key."""
        return (self.type or self.name or "DEFAULT").upper()


class Customer(CamelModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    name: Optional[str] = None
    is_vip: bool = Field(False, alias="isVIP")


class Order(CamelModel):
    """Read-only order record as fetched from the order store."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(..., min_length=1)
    status: OrderStatus
    created_at: datetime
    items: list[OrderItem]
    total: Optional[float] = None
    customer: Optional[Customer] = None
    special_instructions: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_vip(self) -> bool:
        return self.customer is not None and self.customer.is_vip

    @property
    def is_rush(self) -> bool:
        return self.priority == "rush"

    @property
    def has_special_instructions(self) -> bool:
        return bool(self.special_instructions)


class WorkloadEntry(CamelModel):
    """Partial order record: only the fields the workload analysis reads."""

    model_config = ConfigDict(extra="allow", frozen=True)

    status: Optional[str] = None
    items: list[OrderItem] = Field(default_factory=list)
    special_instructions: Optional[str] = None

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def is_active(self) -> bool:
        return self.status in {s.value for s in ACTIVE_STATUSES}

    @property
    def has_special_instructions(self) -> bool:
        return bool(self.special_instructions)


# ── Configuration ──

DEFAULT_PREPARATION_TIMES: dict[str, float] = {
    "SANDWICH": 10,
    "BURGER": 15,
    "PIZZA": 20,
    "SALAD": 8,
    "COFFEE": 5,
    "SMOOTHIE": 7,
    "DESSERT": 12,
    "DEFAULT": 15,
}

DEFAULT_STATUS_WEIGHTS: dict[OrderStatus, float] = {
    OrderStatus.PENDING: 10,
    OrderStatus.PROCESSING: 5,
    OrderStatus.COMPLETED: 0,
    OrderStatus.CANCELLED: -1,
    OrderStatus.PICKED_UP: -2,
}


class PriorityWeights(BaseModel):
    model_config = ConfigDict(extra="forbid")

    time_factor: float = 2.0
    status_weights: dict[OrderStatus, float] = Field(
        default_factory=lambda: dict(DEFAULT_STATUS_WEIGHTS)
    )
    total_amount_factor: float = 0.1
    item_count_factor: float = 0.5
    vip_multiplier: float = 1.5
    special_instructions_penalty: float = 2.0

    @field_validator("status_weights")
    @classmethod
    def require_every_status(cls, v: dict[OrderStatus, float]) -> dict[OrderStatus, float]:
        missing = [s.value for s in OrderStatus if s not in v]
        if missing:
            raise ValueError(f"Missing status weights for: {', '.join(missing)}")
        return v


class TimeThresholds(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pending_delay_hours: float = Field(1.0, gt=0)
    processing_delay_hours: float = Field(0.5, gt=0)
    high_severity_hours: float = Field(2.0, gt=0)
    pickup_window_minutes: float = Field(30.0, ge=0)
    min_preparation_minutes: float = Field(5.0, ge=0)
    max_preparation_minutes: float = Field(120.0, gt=0)

    @model_validator(mode="after")
    def check_preparation_bounds(self) -> "TimeThresholds":
        if self.min_preparation_minutes > self.max_preparation_minutes:
            raise ValueError("min_preparation_minutes must not exceed max_preparation_minutes")
        return self


class BusyPeriod(BaseModel):
    """Hour range (both ends inclusive) that adds a pickup buffer."""

    model_config = ConfigDict(extra="forbid")

    label: str
    start_hour: int = Field(..., ge=0, le=23)
    end_hour: int = Field(..., ge=0, le=23)
    buffer_minutes: float = Field(..., ge=0)

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour


class UrgencyThresholds(BaseModel):
    model_config = ConfigDict(extra="forbid")

    medium_minutes: float = Field(30.0, ge=0)
    high_minutes: float = Field(45.0, ge=0)


class SchedulingConfig(BaseModel):
    """Tunable constants of the scheduling engine."""

    model_config = ConfigDict(extra="forbid")

    preparation_times: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_PREPARATION_TIMES)
    )
    priority_weights: PriorityWeights = Field(default_factory=PriorityWeights)
    time_thresholds: TimeThresholds = Field(default_factory=TimeThresholds)
    busy_periods: list[BusyPeriod] = Field(
        default_factory=lambda: [
            BusyPeriod(label="lunch", start_hour=11, end_hour=14, buffer_minutes=15),
            BusyPeriod(label="dinner", start_hour=17, end_hour=19, buffer_minutes=10),
        ]
    )
    urgency_thresholds: UrgencyThresholds = Field(default_factory=UrgencyThresholds)
    timezone: str = "UTC"

    @field_validator("preparation_times")
    @classmethod
    def normalize_categories(cls, v: dict[str, float]) -> dict[str, float]:
        normalized = {key.upper(): minutes for key, minutes in v.items()}
        if "DEFAULT" not in normalized:
            raise ValueError("preparation_times must define a DEFAULT category")
        return normalized

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "SchedulingConfig":
        settings = settings or get_settings()
        return cls(
            timezone=settings.kitchen_timezone,
            time_thresholds=TimeThresholds(
                pending_delay_hours=settings.pending_delay_hours,
                processing_delay_hours=settings.processing_delay_hours,
                pickup_window_minutes=settings.pickup_window_minutes,
                max_preparation_minutes=settings.max_preparation_minutes,
            ),
        )

    @classmethod
    def merged(
        cls,
        overrides: Mapping[str, Any],
        base: Optional["SchedulingConfig"] = None,
    ) -> "SchedulingConfig":
        """Deep-merge a partial override mapping over ``base`` (settings defaults if omitted).

        Keys are case-insensitive, so ``{"TIME_THRESHOLDS": {"PICKUP_WINDOW_MINUTES": 45}}``
        works as well as the snake_case field names. Unknown keys raise.
        """
        base = base or cls.from_settings()
        overrides = _normalize_keys(overrides)
        return cls.model_validate(_deep_merge(base.model_dump(mode="json"), overrides))


# Legacy override names that do not lowercase to a field name
_KEY_ALIASES = {
    "max_preparation_time": "max_preparation_minutes",
    "min_preparation_time": "min_preparation_minutes",
}


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        normalized = {}
        for key, item in value.items():
            if isinstance(key, str):
                key = key.lower()
                key = _KEY_ALIASES.get(key, key)
            normalized[key] = _normalize_keys(item)
        return normalized
    if isinstance(value, (list, tuple)):
        return [_normalize_keys(item) for item in value]
    return value


def _deep_merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ── Output Schemas ──

class PickupWindow(CamelModel):
    estimated_ready_time: datetime
    latest_pickup_time: datetime
    preparation_time: float
    buffer_applied: float = 0.0


class DelayReport(CamelModel):
    order: Order
    hours_since_creation: float
    severity: DelaySeverity
    estimated_delay: float = Field(0.0, ge=0.0)


class DelayNotification(CamelModel):
    order_id: str
    message: str
    severity: DelaySeverity
    timestamp: datetime
    estimated_delay: float
    hours_since_creation: float


class WorkloadSummary(CamelModel):
    active_order_count: int = 0
    total_items: int = 0
    complexity_score: float = 0.0
    workload_score: float = 0.0
    workload_level: WorkloadLevel = WorkloadLevel.NORMAL
    recommended_actions: list[str] = Field(default_factory=list)


class ScheduledOrder(CamelModel):
    """Single queue entry of the kitchen dashboard."""

    order_id: str
    status: OrderStatus
    priority_score: float
    urgency: UrgencyLevel = UrgencyLevel.LOW
    preparation_time: Optional[float] = None
    pickup_window: Optional[PickupWindow] = None


class KitchenDashboard(CamelModel):
    generated_at: datetime
    queue: list[ScheduledOrder] = Field(default_factory=list)
    delays: list[DelayReport] = Field(default_factory=list)
    notifications: list[DelayNotification] = Field(default_factory=list)
    workload: WorkloadSummary = Field(default_factory=WorkloadSummary)
