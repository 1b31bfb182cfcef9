"""
Domain models for the inventory risk engine.

Pure data classes + value objects. No I/O, no side effects.
Deterministic and fully testable.
"""
from dataclasses import dataclass, field
from enum import Enum
from datetime import date as Date
from typing import Optional, Tuple

from ..utils.numeric import round_half_up


class Plan(str, Enum):
    """Planning scenario an opportunity belongs to."""
    ERP = "ERP"    # Baseline plan
    ALT = "ALT"    # Alternative plan (skewed towards Pull in)


class OpportunityStatus(str, Enum):
    """Opportunity lifecycle status."""
    BACKLOG = "Backlog"
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    CANCELED = "Canceled"
    SNOOZED = "Snoozed"


class SuggestedAction(str, Enum):
    """Suggested change on a supply order."""
    PUSH_OUT = "Push Out"  # Defer
    CANCEL = "Cancel"
    PULL_IN = "Pull in"    # Expedite


class SupplyType(str, Enum):
    PO = "PO"  # Purchase order
    PR = "PR"  # Purchase requisition


class KpiMode(str, Enum):
    """Health & risk evaluation mode."""
    SNAPSHOT = "snapshot"      # Evaluate at today (no forward visibility)
    PROJECTION = "projection"  # Evaluate across the selected window


class ViewMode(str, Enum):
    """Time bucketing granularity for projection series."""
    MONTH = "month"
    QUARTER = "quarter"


class SnoozeRuleKind(str, Enum):
    CUSTOMER = "customer"
    PART = "part"


@dataclass(frozen=True)
class Opportunity:
    """
    Suggested supply-chain change - immutable.

    Status transitions produce a new record (see domain.opportunities).
    Dates are ISO strings (YYYY-MM-DD) as exchanged with the dashboard.
    """
    id: str
    plan: Plan
    order_number: str
    part_name: str
    part_number: str
    suggested_action: SuggestedAction
    suggested_date: str
    delivery_date: str      # Earlier than suggested_date only for Push Out
    status: OpportunityStatus
    supplier: str
    customer: str
    esc_level: int          # 1 (low) .. 4 (high)
    plant: str
    buyer_code: str
    mrp_code: str
    supply_type: SupplyType
    cash_impact_eur: int
    assignee: str = ""      # Empty while in Backlog
    team: str = ""
    snooze_rule_ids: Tuple[str, ...] = ()
    prev_status: Optional[OpportunityStatus] = None

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Opportunity id cannot be empty")
        if self.esc_level < 1 or self.esc_level > 4:
            raise ValueError("Escalation level must be between 1 and 4")
        if self.cash_impact_eur < 0:
            raise ValueError("Cash impact cannot be negative")


@dataclass(frozen=True)
class PartSource:
    """Part identity as referenced by opportunities."""
    part_name: str
    part_number: str


@dataclass(frozen=True)
class PartMetrics:
    """Synthetic operating profile of a stocked part - immutable."""
    part_name: str
    part_number: str
    current_stock: int
    unit_value_eur: int
    safety_stock: int
    min_lot_size: int
    lead_time_days: int
    demand_per_day: float
    weekly_supply: int
    supply_offset_days: int
    volatility: int
    seed: int               # Per-part PRNG seed, also phases the jitter

    def __post_init__(self):
        if self.unit_value_eur <= 0:
            raise ValueError("Unit value must be > 0")
        for name in ("current_stock", "safety_stock", "min_lot_size", "lead_time_days",
                     "demand_per_day", "weekly_supply", "supply_offset_days", "volatility"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def inventory_value_eur(self) -> int:
        return self.current_stock * self.unit_value_eur


@dataclass(frozen=True)
class ProjectionPoint:
    """Projected on-hand quantity of a part at a date (may be negative = backlog)."""
    date: Date
    qty: int


@dataclass(frozen=True)
class RiskPart:
    """Per-part contribution to overstock or understock."""
    part_name: str
    part_number: str
    qty: float
    contribution_eur: float


@dataclass(frozen=True)
class HealthRiskKpis:
    """
    Normalized health & risk aggregate.

    Float totals are the normalized values (part lists sum to them);
    the *_eur properties are the rounded figures shown on KPI cards.
    """
    inventory_value: float = 0.0
    overstock_value: float = 0.0
    understock_value: float = 0.0
    overstock_parts: Tuple[RiskPart, ...] = ()
    understock_parts: Tuple[RiskPart, ...] = ()

    @property
    def inventory_eur(self) -> int:
        return round_half_up(self.inventory_value)

    @property
    def overstock_eur(self) -> int:
        return round_half_up(self.overstock_value)

    @property
    def understock_eur(self) -> int:
        return round_half_up(self.understock_value)

    @property
    def overstock_parts_count(self) -> int:
        return len(self.overstock_parts)

    @property
    def understock_parts_count(self) -> int:
        return len(self.understock_parts)


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window; open ends mean unbounded."""
    start: Optional[Date] = None
    end: Optional[Date] = None


@dataclass(frozen=True)
class OpportunityFilters:
    """User filter selection; an empty tuple means 'no filter' for that field."""
    part_keys: Tuple[str, ...] = ()
    suggested_actions: Tuple[SuggestedAction, ...] = ()
    customers: Tuple[str, ...] = ()
    esc_levels: Tuple[int, ...] = ()
    statuses: Tuple[OpportunityStatus, ...] = ()

    def is_empty(self) -> bool:
        return not (self.part_keys or self.suggested_actions or self.customers
                    or self.esc_levels or self.statuses)


@dataclass(frozen=True)
class SnoozeRule:
    """Snooze every opportunity of a customer or of a part key."""
    id: str
    kind: SnoozeRuleKind
    value: str


@dataclass(frozen=True)
class DashboardContext:
    """
    Everything the dashboard used to hold as global state, passed explicitly.

    Attributes:
        plan: Selected plan
        date_range: Selected timeframe
        today: Reference day for "no retroactive risk" guards
        filters: Active opportunity filters
        timeframe_preset: Preset key the range was built from (may be None)
    """
    plan: Plan
    date_range: DateRange
    today: Date
    filters: OpportunityFilters = field(default_factory=OpportunityFilters)
    timeframe_preset: Optional[str] = None
