"""
Example: Inventory Control Tower Walkthrough

Demonstrates:
1. Generating the opportunity datasets of both plans
2. Health & risk KPIs in snapshot and projection mode
3. Stock projection of a single part
4. Inventory breakdown rescaled to the KPI total
5. Monthly projection chart series
"""

from datetime import date

from inventory_risk.config import load_engine_config
from inventory_risk.domain.calendar import range_from_preset
from inventory_risk.domain.models import Plan, DashboardContext
from inventory_risk.domain.opportunities import select_opportunities, group_by_status
from inventory_risk.domain.part_metrics import build_part_sources, build_part_metrics
from inventory_risk.domain.projection import StockProjection
from inventory_risk.domain.seed import generate_opportunities
from inventory_risk.analytics import (
    compute_health_risk_kpis,
    compute_inventory_breakdown,
    build_projection_opps,
    build_projection_series,
)
from inventory_risk.utils.logging_config import setup_logging


TODAY = date(2026, 1, 15)


def kpi_example(config):
    """Health & risk KPIs for both plans."""
    print("=" * 60)
    print("HEALTH & RISK KPIS")
    print("=" * 60)

    window = range_from_preset("eoq", now=TODAY)

    for plan in Plan:
        opps = generate_opportunities(plan, today=TODAY, config=config)
        parts = build_part_metrics(build_part_sources(opps, plan))

        print(f"\n{plan.value} plan: {len(opps)} opportunities, {len(parts)} parts")
        for mode in ("snapshot", "projection"):
            kpis = compute_health_risk_kpis(parts, mode, window.start, window.end, TODAY, config)
            print(f"  {mode:<10} inventory €{kpis.inventory_eur:>8,}  "
                  f"overstock €{kpis.overstock_eur:>7,} ({kpis.overstock_parts_count} parts)  "
                  f"understock €{kpis.understock_eur:>7,} ({kpis.understock_parts_count} parts)")


def projection_example():
    """Weekly projection of one part."""
    print("\n" + "=" * 60)
    print("STOCK PROJECTION")
    print("=" * 60)

    opps = generate_opportunities(Plan.ERP, count=20, today=TODAY)
    part = build_part_metrics(build_part_sources(opps, Plan.ERP))[0]
    projection = StockProjection(part, TODAY, date(2026, 3, 31))

    print(f"\n{part.part_number} - {part.part_name} (safety stock {part.safety_stock})")
    for point in projection.series_over():
        marker = "  <-- below safety" if point.qty < part.safety_stock else ""
        print(f"  {point.date}: {point.qty:>4}{marker}")
    print(f"  Lowest projected stock: {projection.minimum_over()}")


def dashboard_example(config):
    """Breakdown and chart series for a dashboard context."""
    print("\n" + "=" * 60)
    print("DASHBOARD VIEW (ERP, end of year)")
    print("=" * 60)

    opps = generate_opportunities(Plan.ERP, today=TODAY, config=config)
    context = DashboardContext(
        plan=Plan.ERP,
        date_range=range_from_preset("eoy", now=TODAY),
        today=TODAY,
        timeframe_preset="eoy",
    )

    visible = select_opportunities(opps, context)
    print(f"\nVisible opportunities: {len(visible)}")
    for status, count in group_by_status(visible).items():
        print(f"  {status.value:<12} {count}")

    breakdown = compute_inventory_breakdown(visible, context.date_range.start, context.date_range.end)
    print(f"\nInventory KPI: €{breakdown.kpi_total_eur:,} (breakdown €{breakdown.total_eur:,})")
    for row in breakdown.top_programs:
        print(f"  {row.name:<15} {row.display_value:>8} {row.percent:>5}")

    chart_opps = build_projection_opps(opps, context)
    print("\nMonthly projection (K€):")
    for point in build_projection_series("projection", "month", chart_opps,
                                         context.date_range.start, context.date_range.end):
        print(f"  {point.label:<9} opp {point.opp:>5}  target {point.target:>5}  erp {point.erp:>5}")


if __name__ == "__main__":
    setup_logging()
    engine_config = load_engine_config()

    kpi_example(engine_config)
    projection_example()
    dashboard_example(engine_config)
