"""
Time-bucketed projection series for the inventory projection chart.

Buckets opportunity cash impact by calendar month or quarter (walking from the
first of the month/quarter containing the range start through the one
containing the range end) and derives the ERP / target lines in K EUR.
"""
from dataclasses import dataclass
from datetime import date as Date
from typing import List, Optional, Sequence, Union

from ..domain.calendar import (
    DateLike,
    as_date,
    add_months,
    start_of_month,
    end_of_month,
    start_of_quarter,
    end_of_quarter,
    quarter_index,
    parse_iso_date,
)
from ..domain.models import Opportunity, OpportunityStatus, ViewMode, KpiMode, DashboardContext
from ..domain.opportunities import filter_opportunities, in_date_range
from ..utils.numeric import round_half_up, is_finite_number
from .breakdown import rescale_values

# Monthly / quarterly ERP baseline shape (K EUR)
ERP_MONTH_TEMPLATE = [820, 960, 860, 700, 750, 350, 560, 490, 580, 490, 730, 620]
ERP_QUARTER_TEMPLATE = [880, 600, 543, 613]

TARGET_QUARTER_EUR = 2_400_000

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

_EXCLUDED_STATUSES = (OpportunityStatus.SNOOZED, OpportunityStatus.CANCELED)


@dataclass(frozen=True)
class SeriesBucket:
    """Opportunity cash impact summed over one calendar month or quarter."""
    label: str
    start: Date
    end: Date
    opp_eur: float
    target_k: int
    period_index: int  # month 0-11 or quarter 0-3


@dataclass(frozen=True)
class SeriesPoint:
    """One point of the projection chart (values in K EUR)."""
    label: str
    date: Date
    erp: int
    opp: int
    target: int
    erp_template: int = 0


def _cash(opp: Opportunity) -> float:
    return opp.cash_impact_eur if is_finite_number(opp.cash_impact_eur) else 0.0


def _bucket_total(opportunities: Sequence[Opportunity], start: Date, end: Date) -> float:
    # Unparseable dates never match a bucket
    return sum(_cash(o) for o in opportunities if in_date_range(o, start, end))


def build_time_bucketed_series(
    opportunities: Sequence[Opportunity],
    view_mode: Union[ViewMode, str],
    range_from: DateLike,
    range_to: DateLike,
) -> List[SeriesBucket]:
    """
    Sum opportunity cash impact per calendar month or quarter.

    Args:
        opportunities: Opportunities to bucket (by suggested date)
        view_mode: "month" or "quarter"
        range_from, range_to: Range; buckets cover whole months/quarters

    Returns:
        Consecutive buckets from the period containing range_from through the
        period containing range_to (empty if range_to precedes range_from's period)

    Raises:
        ValueError: If view_mode is unknown
    """
    view_mode = ViewMode(view_mode)
    range_from = as_date(range_from)
    range_to = as_date(range_to)
    buckets = []

    if view_mode == ViewMode.MONTH:
        cursor = start_of_month(range_from)
        last = end_of_month(range_to)
        while cursor <= last:
            month_end = end_of_month(cursor)
            quarter_days = (end_of_quarter(cursor) - start_of_quarter(cursor)).days + 1
            month_days = (month_end - cursor).days + 1
            buckets.append(SeriesBucket(
                label=f"{MONTH_LABELS[cursor.month - 1]} {cursor.year}",
                start=cursor,
                end=month_end,
                opp_eur=_bucket_total(opportunities, cursor, month_end),
                target_k=round_half_up(TARGET_QUARTER_EUR * (month_days / quarter_days) / 1000),
                period_index=cursor.month - 1,
            ))
            cursor = add_months(cursor, 1)
        return buckets

    cursor = start_of_quarter(range_from)
    last = end_of_quarter(range_to)
    while cursor <= last:
        q_end = end_of_quarter(cursor)
        q = quarter_index(cursor)
        buckets.append(SeriesBucket(
            label=f"Q{q + 1} {cursor.year}",
            start=cursor,
            end=q_end,
            opp_eur=_bucket_total(opportunities, cursor, q_end),
            target_k=round_half_up(TARGET_QUARTER_EUR / 1000),
            period_index=q,
        ))
        cursor = add_months(cursor, 3)
    return buckets


def _derive_point(label: str, when: Date, opp_k: int, erp_template: int) -> SeriesPoint:
    target = max(round_half_up(opp_k * 1.08), opp_k + 15)
    erp = max(erp_template, target + max(25, round_half_up(target * 0.12)))
    return SeriesPoint(label=label, date=when, erp=erp, opp=opp_k, target=target, erp_template=erp_template)


def _template_for(view_mode: ViewMode, period_index: int) -> int:
    if view_mode == ViewMode.MONTH:
        return ERP_MONTH_TEMPLATE[period_index % len(ERP_MONTH_TEMPLATE)]
    return ERP_QUARTER_TEMPLATE[period_index % len(ERP_QUARTER_TEMPLATE)]


def build_projection_series(
    chart_mode: Union[KpiMode, str],
    view_mode: Union[ViewMode, str],
    opportunities: Sequence[Opportunity],
    range_from: DateLike,
    range_to: DateLike,
) -> List[SeriesPoint]:
    """
    Chart points (K EUR): opportunity value, target line and ERP line.

    Snapshot mode collapses everything into a single "Today" point; projection
    mode yields one point per month or quarter bucket.
    """
    chart_mode = KpiMode(chart_mode)
    view_mode = ViewMode(view_mode)
    range_from = as_date(range_from)

    if chart_mode == KpiMode.SNAPSHOT:
        opp_k = round_half_up(sum(_cash(o) for o in opportunities) / 1000)
        index = range_from.month - 1 if view_mode == ViewMode.MONTH else quarter_index(range_from)
        return [_derive_point("Today", range_from, opp_k, _template_for(view_mode, index))]

    return [
        _derive_point(b.label, b.start, round_half_up(b.opp_eur / 1000), _template_for(view_mode, b.period_index))
        for b in build_time_bucketed_series(opportunities, view_mode, range_from, range_to)
    ]


def rescale_series(points: Sequence[SeriesPoint], total_k: int) -> List[SeriesPoint]:
    """
    Match the opportunity line to an externally computed total (K EUR).

    Bucket proportions are kept; target and ERP lines follow the new values.
    """
    values = rescale_values([p.opp for p in points], total_k)
    return [
        _derive_point(p.label, p.date, v, p.erp_template)
        for p, v in zip(points, values)
    ]


def get_series_value_at(points: Sequence[SeriesPoint], at: DateLike) -> Optional[SeriesPoint]:
    """Last point dated <= at (first point if all are later); None if empty."""
    if not points:
        return None
    target = as_date(at)
    ordered = sorted(points, key=lambda p: p.date)
    candidate = ordered[0]
    for point in ordered:
        if point.date <= target:
            candidate = point
        else:
            break
    return candidate


def build_projection_opps(opportunities: Sequence[Opportunity], context: DashboardContext) -> List[Opportunity]:
    """Opportunities feeding the projection chart: plan, active, in range, filtered."""
    start = as_date(context.date_range.start) if context.date_range.start is not None else None
    end = as_date(context.date_range.end) if context.date_range.end is not None else None
    base = [
        o for o in opportunities
        if o.plan == context.plan
        and o.status not in _EXCLUDED_STATUSES
        and parse_iso_date(o.suggested_date) is not None
        and in_date_range(o, start, end)
    ]
    return filter_opportunities(base, context.filters)
