"""
Inventory breakdown (pie) builders.

Splits an inventory total into labeled rows (programs, stock status, WIP)
and rescales row sets to match a target total while keeping their shape.

Rescale rule: scale every row by T / S, round, then put the rounding
remainder on the first row so the rows add up to exactly T. A negative
remainder the first row cannot absorb without going below zero spills into
the following rows in order. Percent labels are always recomputed from the
rescaled values.
"""
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..domain.calendar import DateLike
from ..domain.models import Opportunity
from ..domain.opportunities import timeframe_scale
from ..domain.prng import Mulberry32
from ..utils.numeric import round_half_up


PROGRAMS = ["Airbus A350", "Boeing 787", "Boeing 737", "ATR 72", "Rafale Marine", "Other"]
STOCK_STATUS = ["Quality Inspection", "At Vendor", "Excluded", "Blocked"]
WIP = ["Blocked", "Conditionally covered", "Covered"]

PROGRAM_COLORS = ["#2563EB", "#06B6D4", "#F59E0B", "#F97316", "#8B5CF6", "#9CA3AF"]
STOCK_COLORS = ["#2563EB", "#06B6D4", "#F59E0B", "#F97316"]
WIP_COLORS = ["#EF4444", "#F59E0B", "#22C55E"]

KPI_EUR_PER_OPPORTUNITY = 180_000
MIN_KPI_TOTAL_EUR = 900_000
MIN_BREAKDOWN_TOTAL_EUR = 250_000
REFERENCE_WINDOW_DAYS = 90
OTHER_DAMPING = 0.55


@dataclass(frozen=True)
class BreakdownRow:
    """One slice of a pie breakdown."""
    name: str
    value: int
    display_value: str = ""
    percent: str = ""
    color: str = ""


@dataclass(frozen=True)
class InventoryBreakdown:
    kpi_total_eur: int
    total_eur: int  # Breakdown total, always <= kpi_total_eur
    top_programs: Tuple[BreakdownRow, ...]
    stock_status: Tuple[BreakdownRow, ...]
    wip: Tuple[BreakdownRow, ...]


def format_eur_compact(value: float) -> str:
    """€1.2M / €45K / €950"""
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"€{value / 1_000_000:.1f}M"
    if magnitude >= 1_000:
        return f"€{round_half_up(value / 1_000)}K"
    return f"€{round_half_up(value)}"


def pct(value: float, total: float) -> str:
    if not total:
        return "0%"
    return f"{round_half_up(value / total * 100)}%"


def rescale_values(values: Sequence[float], new_total: int) -> List[int]:
    """
    Rescale values to sum to exactly new_total, preserving proportions.

    Args:
        values: Raw row values (non-negative for sign preservation)
        new_total: Integer target total

    Returns:
        Integer values summing to new_total (empty input -> empty list)
    """
    if not values:
        return []
    total = sum(values) or 1
    scaled = [round_half_up(v / total * new_total) for v in values]
    remainder = new_total - sum(scaled)

    if remainder >= 0:
        scaled[0] += remainder
        return scaled

    for i, v in enumerate(scaled):
        if remainder == 0:
            break
        if i == len(scaled) - 1 or v < 0:
            # last row (or a row that was negative to begin with) takes the rest
            scaled[i] += remainder
            remainder = 0
            break
        taken = max(remainder, -v)
        scaled[i] += taken
        remainder -= taken
    return scaled


def rescale_rows(rows: Sequence[BreakdownRow], new_total: int) -> List[BreakdownRow]:
    """Rescale rows to new_total and recompute their display labels."""
    values = rescale_values([row.value for row in rows], new_total)
    return relabel([replace(row, value=v) for row, v in zip(rows, values)])


def relabel(rows: Sequence[BreakdownRow]) -> List[BreakdownRow]:
    """Recompute display value and percent from the current values."""
    total = sum(row.value for row in rows) or 1
    return [replace(row, display_value=format_eur_compact(row.value), percent=pct(row.value, total))
            for row in rows]


def with_display(rows: Sequence[BreakdownRow], colors: Sequence[str]) -> List[BreakdownRow]:
    """Assign palette colors (cycled) and display labels."""
    colored = [replace(row, color=colors[i % len(colors)]) for i, row in enumerate(rows)]
    return relabel(colored)


def _split(rng: Mulberry32, total: int, labels: Sequence[str]) -> List[BreakdownRow]:
    weights = [0.6 + rng() * 1.8 for _ in labels]
    weight_sum = sum(weights) or 1
    return [BreakdownRow(name=name, value=round_half_up(w / weight_sum * total))
            for name, w in zip(labels, weights)]


def _content_seed(opportunities: Sequence[Opportunity], salt: int) -> int:
    return sum(len(o.id) + len(o.order_number) for o in opportunities) + salt


def compute_inventory_breakdown(
    opportunities: Sequence[Opportunity],
    range_from: Optional[DateLike] = None,
    range_to: Optional[DateLike] = None,
    kpi_total_eur: Optional[int] = None,
) -> InventoryBreakdown:
    """
    Split inventory into program / stock status / WIP breakdowns.

    The breakdown total is a 45-65% share of the KPI total; stock status and
    WIP are 70-85% and 30-45% subsets of it. Shapes are seeded from the
    opportunity content so the same selection always renders the same pies.

    Args:
        opportunities: Opportunities in the current selection
        range_from, range_to: Selected timeframe (smaller window -> smaller totals)
        kpi_total_eur: Externally computed inventory KPI (e.g. from the health &
                       risk KPIs). When given, every total and row is rescaled to
                       it, keeping the seeded shapes.

    Returns:
        InventoryBreakdown
    """
    opportunities = list(opportunities)
    if not opportunities:
        empty: Tuple[BreakdownRow, ...] = ()
        return InventoryBreakdown(0, 0, empty, empty, empty)

    scale = timeframe_scale(range_from, range_to, REFERENCE_WINDOW_DAYS)
    raw_kpi_total = round_half_up(len(opportunities) * KPI_EUR_PER_OPPORTUNITY * scale)
    kpi_total = max(raw_kpi_total, MIN_KPI_TOTAL_EUR)

    # Breakdown total is always smaller than the KPI
    share_rng = Mulberry32(_content_seed(opportunities, kpi_total))
    breakdown_share = 0.45 + share_rng() * 0.20
    safe_total = max(round_half_up(kpi_total * breakdown_share), MIN_BREAKDOWN_TOTAL_EUR)

    rng = Mulberry32(_content_seed(opportunities, safe_total))

    top_programs = _split(rng, safe_total, PROGRAMS)
    # Keep "Other" from dominating; first row absorbs the difference
    other_idx = PROGRAMS.index("Other")
    top_programs[other_idx] = replace(top_programs[other_idx],
                                      value=round_half_up(top_programs[other_idx].value * OTHER_DAMPING))
    missing = safe_total - sum(row.value for row in top_programs)
    top_programs[0] = replace(top_programs[0], value=top_programs[0].value + missing)

    stock_total = round_half_up(safe_total * (0.70 + rng() * 0.15))
    wip_total = round_half_up(safe_total * (0.30 + rng() * 0.15))
    stock_status = rescale_rows(_split(rng, stock_total, STOCK_STATUS), stock_total)
    wip = rescale_rows(_split(rng, wip_total, WIP), wip_total)

    if kpi_total_eur is not None:
        ratio = max(0, kpi_total_eur) / kpi_total
        kpi_total = max(0, int(kpi_total_eur))
        safe_total = round_half_up(safe_total * ratio)
        top_programs = rescale_rows(top_programs, safe_total)
        stock_status = rescale_rows(stock_status, round_half_up(stock_total * ratio))
        wip = rescale_rows(wip, round_half_up(wip_total * ratio))

    return InventoryBreakdown(
        kpi_total_eur=kpi_total,
        total_eur=safe_total,
        top_programs=tuple(with_display(top_programs, PROGRAM_COLORS)),
        stock_status=tuple(with_display(stock_status, STOCK_COLORS)),
        wip=tuple(with_display(wip, WIP_COLORS)),
    )
