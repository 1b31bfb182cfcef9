"""
Health & risk KPI aggregation for the inventory control tower.

Turns per-part operating profiles into three monetary KPIs:
- Inventory value (projected or current stock x unit value)
- Overstock (stock above safety stock + max(lead-time demand, min lot))
- Understock (projection only: safety stock minus lowest projected stock)

Raw sums are then normalized so the KPIs stay mutually consistent:
risk never exceeds inventory, overstock <= 35% and understock <= 20% of
inventory, understock <= 80% of overstock. Per-part contribution lists are
scaled by the same factor as their totals, so they always add up.

Windows starting or ending before today report nothing (no retroactive risk).
"""
import logging
import math
from datetime import date as Date
from typing import Iterable, List, Sequence, Tuple

from ..config import EngineConfig, DEFAULT_CONFIG, AUTO_SCALE_TARGET_EUR, AUTO_SCALE_MAX_MULTIPLIER
from ..domain.calendar import DateLike, as_date
from ..domain.models import PartMetrics, RiskPart, HealthRiskKpis, KpiMode
from ..domain.projection import StockProjection
from ..utils.numeric import clamp_non_negative, safe_number, to_value, is_finite_number

logger = logging.getLogger(__name__)

# Float slack when checking normalized totals
_TOLERANCE = 1e-6


def compute_health_risk_kpis(
    parts: Sequence[PartMetrics],
    mode: str,
    range_from: DateLike,
    range_to: DateLike,
    today: DateLike,
    config: EngineConfig = DEFAULT_CONFIG,
) -> HealthRiskKpis:
    """
    Compute normalized health & risk KPIs for a set of parts.

    Args:
        parts: Part operating profiles
        mode: "snapshot" (evaluate current stock) or "projection" (evaluate
              projected stock at range end + lowest stock across the window)
        range_from: Window start
        range_to: Window end
        today: Reference day; windows touching the past return zeros
        config: Engine configuration (caps, sampling step, diagnostics)

    Returns:
        HealthRiskKpis (all-zero with empty part lists for past windows)

    Raises:
        ValueError: If mode is not "snapshot" or "projection"
    """
    try:
        mode = KpiMode(mode)
    except ValueError:
        raise ValueError(f"Invalid KPI mode: {mode}. Must be 'snapshot' or 'projection'.")

    start = as_date(range_from)
    end = as_date(range_to)
    today = as_date(today)

    if start < today or end < today:
        return HealthRiskKpis()

    inventory_eur = 0.0
    raw_overstock: List[RiskPart] = []
    raw_understock: List[RiskPart] = []

    for part in parts:
        unit_value = safe_number(part.unit_value_eur, 0.0)

        if mode == KpiMode.PROJECTION:
            projection = StockProjection(part, start, end, config.projection_step_days)
            eval_stock = projection.point_at(end)
            _log_invalid(part, "eval_stock", eval_stock, end, mode, config)
        else:
            projection = None
            eval_stock = safe_number(part.current_stock, 0.0)

        safe_stock = clamp_non_negative(eval_stock)
        inventory_eur += to_value(safe_stock, unit_value)

        overstock_qty = max(0.0, safe_stock - overstock_threshold(part, config))
        if overstock_qty > 0:
            raw_overstock.append(RiskPart(
                part_name=part.part_name,
                part_number=part.part_number,
                qty=overstock_qty,
                contribution_eur=to_value(overstock_qty, unit_value),
            ))

        # Snapshot mode has no forward visibility -> never understock
        if projection is not None:
            min_raw = projection.minimum_over()
            _log_invalid(part, "min_projected_stock", min_raw, end, mode, config)
            shortage_qty = max(0.0, safe_number(part.safety_stock, 0.0) - clamp_non_negative(min_raw))
            if shortage_qty > 0:
                raw_understock.append(RiskPart(
                    part_name=part.part_name,
                    part_number=part.part_number,
                    qty=shortage_qty,
                    contribution_eur=to_value(shortage_qty, unit_value),
                ))

    if config.auto_scale_to_millions:
        multiplier = _auto_scale_multiplier(inventory_eur)
        inventory_eur *= multiplier
        raw_overstock = _scale_parts(raw_overstock, multiplier)
        raw_understock = _scale_parts(raw_understock, multiplier)

    if config.diagnostics:
        overstock_sum = sum_contributions(raw_overstock)
        understock_sum = sum_contributions(raw_understock)
        if not all(is_finite_number(v) and v >= 0 for v in (inventory_eur, overstock_sum, understock_sum)):
            logger.warning(
                "Health & Risk KPI anomaly detected: inventory=%s overstock=%s understock=%s "
                "mode=%s range=%s..%s",
                inventory_eur, overstock_sum, understock_sum, mode.value, start, end,
            )

    kpis = normalize_kpis(inventory_eur, raw_overstock, raw_understock, config)

    if config.diagnostics:
        if (kpis.overstock_value > config.concentrated_overstock_eur
                and kpis.overstock_parts_count < config.concentrated_overstock_min_parts):
            logger.warning(
                "Overstock seems too concentrated: %.0f EUR over %d parts; check counting and aggregation.",
                kpis.overstock_value, kpis.overstock_parts_count,
            )
        for violation in check_kpi_invariants(kpis, config):
            logger.warning(f"Health & Risk KPI invariant violated: {violation}")

    return kpis


def overstock_threshold(part: PartMetrics, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Stock level above which a part counts as overstocked."""
    lead_time_demand = safe_number(part.demand_per_day, 0.0) * safe_number(part.lead_time_days, 0.0)
    base = safe_number(part.safety_stock, 0.0) + max(lead_time_demand, safe_number(part.min_lot_size, 0.0))
    return base * config.overstock_threshold_factor


def normalize_kpis(
    inventory_value: float,
    overstock_parts: Iterable[RiskPart],
    understock_parts: Iterable[RiskPart],
    config: EngineConfig = DEFAULT_CONFIG,
) -> HealthRiskKpis:
    """
    Enforce the cross-KPI caps on raw totals.

    Steps run once, in order, each seeing the effect of the previous one:
    1. cap each risk total at inventory
    2. scale both down if their sum exceeds inventory
    3. cap overstock at max_overstock_ratio x inventory
    4. cap understock at max_understock_ratio x inventory
    5. re-apply the combined constraint
    6. cap understock at max_understock_to_overstock x overstock (if overstock > 0)
    7. a total reduced to zero clears its part list

    Every rescale applies the same factor to the total and to its part list.
    """
    inventory = clamp_non_negative(inventory_value)
    over_parts = list(overstock_parts)
    under_parts = list(understock_parts)
    overstock = clamp_non_negative(sum_contributions(over_parts))
    understock = clamp_non_negative(sum_contributions(under_parts))

    # 1) Hard caps relative to inventory
    if overstock > inventory:
        overstock, over_parts = _rescale(overstock, over_parts, inventory / overstock)
    if understock > inventory:
        understock, under_parts = _rescale(understock, under_parts, inventory / understock)

    # 2) Combined risk should not exceed inventory
    overstock, understock, over_parts, under_parts = _cap_combined(
        inventory, overstock, understock, over_parts, under_parts
    )

    # 3-4) Ratio caps
    overstock_cap = inventory * config.max_overstock_ratio
    if overstock > overstock_cap and overstock > 0:
        overstock, over_parts = _rescale(overstock, over_parts, overstock_cap / overstock)
    understock_cap = inventory * config.max_understock_ratio
    if understock > understock_cap and understock > 0:
        understock, under_parts = _rescale(understock, under_parts, understock_cap / understock)

    # 5) Re-apply combined constraint after ratio caps
    overstock, understock, over_parts, under_parts = _cap_combined(
        inventory, overstock, understock, over_parts, under_parts
    )

    # 6) Keep understock from dominating overstock
    if overstock > 0:
        target = overstock * config.max_understock_to_overstock
        if understock > target and understock > 0:
            understock, under_parts = _rescale(understock, under_parts, target / understock)

    # 7) Part lists consistent with zero totals
    if overstock == 0:
        over_parts = []
    if understock == 0:
        under_parts = []

    return HealthRiskKpis(
        inventory_value=inventory,
        overstock_value=overstock,
        understock_value=understock,
        overstock_parts=tuple(over_parts),
        understock_parts=tuple(under_parts),
    )


def check_kpi_invariants(kpis: HealthRiskKpis, config: EngineConfig = DEFAULT_CONFIG) -> List[str]:
    """
    List the normalized-KPI invariants a result violates (empty = consistent).

    Compares with a small float tolerance; totals are the unrounded values.
    """
    inventory = kpis.inventory_value
    overstock = kpis.overstock_value
    understock = kpis.understock_value
    slack = _TOLERANCE * max(1.0, inventory)
    violations = []

    if overstock + understock > inventory + slack:
        violations.append(f"overstock + understock ({overstock + understock:.2f}) > inventory ({inventory:.2f})")
    if overstock > inventory * config.max_overstock_ratio + slack:
        violations.append(f"overstock ({overstock:.2f}) above {config.max_overstock_ratio:.0%} of inventory")
    if understock > inventory * config.max_understock_ratio + slack:
        violations.append(f"understock ({understock:.2f}) above {config.max_understock_ratio:.0%} of inventory")
    if overstock > 0 and understock > overstock * config.max_understock_to_overstock + slack:
        violations.append(f"understock ({understock:.2f}) dominates overstock ({overstock:.2f})")

    for label, total, parts in (("overstock", overstock, kpis.overstock_parts),
                                ("understock", understock, kpis.understock_parts)):
        if abs(sum_contributions(parts) - total) > slack + len(parts):
            violations.append(f"{label} parts do not sum to the {label} total")
        if total == 0 and parts:
            violations.append(f"{label} is zero but lists {len(parts)} parts")

    return violations


def sum_contributions(parts: Iterable[RiskPart]) -> float:
    return sum(p.contribution_eur for p in parts if is_finite_number(p.contribution_eur))


def _scale_parts(parts: List[RiskPart], scale: float) -> List[RiskPart]:
    if not math.isfinite(scale) or scale <= 0 or scale == 1:
        return parts
    return [
        RiskPart(part_name=p.part_name, part_number=p.part_number, qty=p.qty,
                 contribution_eur=p.contribution_eur * scale)
        for p in parts
    ]


def _rescale(total: float, parts: List[RiskPart], scale: float) -> Tuple[float, List[RiskPart]]:
    return total * scale, _scale_parts(parts, scale)


def _cap_combined(inventory, overstock, understock, over_parts, under_parts):
    combined = overstock + understock
    if combined > inventory and combined > 0:
        scale = inventory / combined
        overstock, over_parts = _rescale(overstock, over_parts, scale)
        understock, under_parts = _rescale(understock, under_parts, scale)
    return overstock, understock, over_parts, under_parts


def _auto_scale_multiplier(inventory_eur: float) -> int:
    """Power of ten lifting inventory into the M EUR range (bounded)."""
    multiplier = 1
    while inventory_eur * multiplier < AUTO_SCALE_TARGET_EUR and multiplier < AUTO_SCALE_MAX_MULTIPLIER:
        multiplier *= 10
    return min(multiplier, AUTO_SCALE_MAX_MULTIPLIER)


def _log_invalid(part: PartMetrics, label: str, value: float, at: Date, mode: KpiMode,
                 config: EngineConfig) -> None:
    if not config.diagnostics:
        return
    if not is_finite_number(value):
        logger.warning(
            "Health & Risk KPI invalid value: %s=%s part=%s (%s) date=%s mode=%s",
            label, value, part.part_number, part.part_name, at, mode.value,
        )
    elif value < 0:
        # Negative projections are expected (backlog); clamped before valuation
        logger.debug("%s below zero for %s at %s: %s", label, part.part_number, at, value)
