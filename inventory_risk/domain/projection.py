"""
Stock projection model.

Projects a part's on-hand quantity d days after a reference date:

    qty(d) = current_stock
             - demand_per_day * d                               (linear depletion)
             + weekly_supply * floor((d + supply_offset_days) / 7)   (weekly batches)
             + round(volatility * sin((d + seed) / 6))          (bounded jitter)

rounded to the nearest unit. Quantities may go negative (backlog); callers
clamp before turning them into money.

Series are sampled every `step_days` from the window start and always end
with a sample on the exact window end. Every call recomputes from scratch.
"""
from datetime import timedelta
from typing import List

import numpy as np

from .calendar import DateLike, as_date, diff_days
from .models import PartMetrics, ProjectionPoint
from ..config import PROJECTION_STEP_DAYS
from ..utils.numeric import safe_number

SUPPLY_PERIOD_DAYS = 7
JITTER_PERIOD = 6.0


def _half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def project_quantities(part: PartMetrics, day_offsets: np.ndarray) -> np.ndarray:
    """
    Vectorized projection for an array of elapsed-day offsets.

    Returns:
        int64 array of projected quantities (same shape as day_offsets)
    """
    days = np.asarray(day_offsets, dtype=np.float64)
    demand = part.demand_per_day * days
    supply_events = np.floor((days + part.supply_offset_days) / SUPPLY_PERIOD_DAYS)
    supply = part.weekly_supply * supply_events
    jitter = _half_up(np.sin((days + part.seed) / JITTER_PERIOD) * part.volatility)
    return _half_up(part.current_stock - demand + supply + jitter).astype(np.int64)


def projected_stock_raw(part: PartMetrics, start: DateLike, at: DateLike) -> int:
    """Projected quantity at a single date (no sampling grid)."""
    days = diff_days(start, at)
    return int(project_quantities(part, np.array([days]))[0])


class StockProjection:
    """
    Projection of one part over a window [start, end].

    Example:
        >>> proj = StockProjection(part, date(2026, 1, 15), date(2026, 2, 20))
        >>> [p.date for p in proj.series_over()][-1]
        datetime.date(2026, 2, 20)
    """

    def __init__(self, part: PartMetrics, start: DateLike, end: DateLike,
                 step_days: int = PROJECTION_STEP_DAYS):
        if step_days < 1:
            raise ValueError("step_days must be >= 1")
        self.part = part
        self.start = as_date(start)
        self.end = as_date(end)
        self.step_days = step_days

    def _offsets(self) -> np.ndarray:
        total_days = diff_days(self.start, self.end)
        offsets = np.arange(0, total_days + 1, self.step_days, dtype=np.int64)
        if total_days % self.step_days != 0:
            offsets = np.append(offsets, total_days)
        return offsets

    def series_over(self) -> List[ProjectionPoint]:
        """Sampled series, ending exactly on the window end."""
        offsets = self._offsets()
        quantities = project_quantities(self.part, offsets)
        return [
            ProjectionPoint(date=self.start + timedelta(days=int(d)), qty=int(q))
            for d, q in zip(offsets, quantities)
        ]

    def point_at(self, target: DateLike) -> int:
        """
        Step-function lookup: quantity of the last sample dated <= target.

        Targets before the first sample resolve to the first sample.
        """
        series = self.series_over()
        if not series:
            return int(safe_number(self.part.current_stock, 0))
        target_day = as_date(target)
        candidate = series[0]
        for point in series:
            if point.date <= target_day:
                candidate = point
            else:
                break
        return candidate.qty

    def minimum_over(self) -> int:
        """Lowest sampled quantity (stockout detection); current stock if no samples."""
        offsets = self._offsets()
        if offsets.size == 0:
            return int(safe_number(self.part.current_stock, 0))
        return int(project_quantities(self.part, offsets).min())


def project_stock(part: PartMetrics, start: DateLike, end: DateLike,
                  step_days: int = PROJECTION_STEP_DAYS) -> List[ProjectionPoint]:
    return StockProjection(part, start, end, step_days).series_over()


def projected_stock_at(part: PartMetrics, start: DateLike, end: DateLike, at: DateLike,
                       step_days: int = PROJECTION_STEP_DAYS) -> int:
    return StockProjection(part, start, end, step_days).point_at(at)


def min_projected_stock(part: PartMetrics, start: DateLike, end: DateLike,
                        step_days: int = PROJECTION_STEP_DAYS) -> int:
    return StockProjection(part, start, end, step_days).minimum_over()
