"""Analytics package: health/risk KPIs, breakdowns and projection series."""

from .kpi import compute_health_risk_kpis, normalize_kpis
from .breakdown import rescale_rows, rescale_values, compute_inventory_breakdown
from .projection_series import (
    build_time_bucketed_series,
    build_projection_series,
    build_projection_opps,
    get_series_value_at,
    rescale_series,
)

__all__ = [
    "compute_health_risk_kpis",
    "normalize_kpis",
    "rescale_rows",
    "rescale_values",
    "compute_inventory_breakdown",
    "build_time_bucketed_series",
    "build_projection_series",
    "build_projection_opps",
    "get_series_value_at",
    "rescale_series",
]
