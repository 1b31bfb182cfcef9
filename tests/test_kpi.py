"""
Tests for health & risk KPIs (inventory_risk/analytics/kpi.py).

Validates:
- Snapshot and projection golden totals for the catalog parts
- No retroactive risk for windows touching the past
- Cross-KPI caps and part list consistency (looped over plans and windows)
- Normalization steps in isolation
- Optional auto-scale and diagnostic warnings
"""

import logging
import pytest
from datetime import date, timedelta

from inventory_risk.config import EngineConfig
from inventory_risk.domain.models import Plan, RiskPart, HealthRiskKpis, KpiMode
from inventory_risk.domain.part_metrics import build_part_sources, build_part_metrics, part_metrics_for
from inventory_risk.domain.seed import generate_opportunities, PARTS
from inventory_risk.analytics.kpi import (
    compute_health_risk_kpis,
    normalize_kpis,
    check_kpi_invariants,
    overstock_threshold,
    sum_contributions,
)


TODAY = date(2026, 1, 15)
WINDOW_END = date(2026, 3, 31)


@pytest.fixture(scope="module")
def catalog_parts():
    """All catalog parts in catalog order."""
    return [part_metrics_for(name, number) for name, number in PARTS]


def _risk(number, eur, qty=1.0):
    return RiskPart(part_name=f"Part {number}", part_number=number, qty=qty, contribution_eur=eur)


class TestSnapshotMode:
    """Snapshot evaluates current stock only."""

    def test_golden_totals(self, catalog_parts):
        kpis = compute_health_risk_kpis(catalog_parts, "snapshot", TODAY, WINDOW_END, TODAY)

        assert kpis.inventory_eur == 13062
        assert kpis.overstock_eur == 0
        assert kpis.understock_eur == 0
        assert kpis.overstock_parts == ()
        assert kpis.understock_parts == ()

    def test_never_understock(self):
        """A part far below safety stock still reports no understock in snapshot."""
        part = part_metrics_for("Nozzle Plate", "NP-11409")  # stock 2, safety 9
        kpis = compute_health_risk_kpis([part], KpiMode.SNAPSHOT, TODAY, WINDOW_END, TODAY)
        assert kpis.understock_value == 0
        assert kpis.understock_parts_count == 0


class TestProjectionMode:
    """Projection evaluates stock at the window end and the window minimum."""

    def test_golden_totals(self, catalog_parts):
        kpis = compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY)

        assert kpis.inventory_eur == 8008
        assert kpis.overstock_value == pytest.approx(2062.288681204569)
        assert kpis.overstock_eur == 2062
        assert kpis.understock_value == pytest.approx(1601.6)
        assert kpis.understock_eur == 1602

    def test_golden_part_lists(self, catalog_parts):
        kpis = compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY)

        assert [p.part_number for p in kpis.overstock_parts] == ["AR-77102"]
        assert kpis.overstock_parts[0].qty == pytest.approx(34.72)
        assert [(p.part_number, p.qty) for p in kpis.understock_parts] == [
            ("VA-77821", 5), ("BK-22109", 11), ("SM-45010", 13),
            ("GH-90211", 6), ("NP-11409", 9), ("SP-55219", 4),
        ]

    def test_part_lists_sum_to_totals(self, catalog_parts):
        kpis = compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY)

        assert sum_contributions(kpis.overstock_parts) == pytest.approx(kpis.overstock_value)
        assert sum_contributions(kpis.understock_parts) == pytest.approx(kpis.understock_value)

    def test_deterministic(self, catalog_parts):
        a = compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY)
        b = compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY)
        assert a == b

    def test_empty_parts(self):
        kpis = compute_health_risk_kpis([], "projection", TODAY, WINDOW_END, TODAY)
        assert kpis == HealthRiskKpis()


class TestWindowGuard:
    """Windows touching the past report nothing."""

    @pytest.mark.parametrize("mode", ["snapshot", "projection"])
    def test_start_before_today(self, catalog_parts, mode):
        kpis = compute_health_risk_kpis(catalog_parts, mode, TODAY - timedelta(days=1), WINDOW_END, TODAY)
        assert kpis == HealthRiskKpis()

    def test_end_before_today(self, catalog_parts):
        kpis = compute_health_risk_kpis(catalog_parts, "projection", TODAY, TODAY - timedelta(days=3), TODAY)
        assert kpis.inventory_value == 0
        assert kpis.overstock_parts == () and kpis.understock_parts == ()


class TestInvalidArguments:

    def test_invalid_mode(self, catalog_parts):
        with pytest.raises(ValueError, match="Invalid KPI mode"):
            compute_health_risk_kpis(catalog_parts, "forecast", TODAY, WINDOW_END, TODAY)


class TestKpiInvariants:
    """Normalized KPIs are consistent for every plan and window."""

    WINDOWS = [(0, 7), (0, 30), (0, 90), (10, 200), (30, 365)]

    @pytest.mark.parametrize("plan", list(Plan))
    @pytest.mark.parametrize("mode", ["snapshot", "projection"])
    def test_invariants_hold(self, plan, mode):
        opps = generate_opportunities(plan, today=TODAY)
        parts = build_part_metrics(build_part_sources(opps, plan))
        config = EngineConfig()

        for start_offset, end_offset in self.WINDOWS:
            start = TODAY + timedelta(days=start_offset)
            end = TODAY + timedelta(days=end_offset)
            kpis = compute_health_risk_kpis(parts, mode, start, end, TODAY, config)

            assert check_kpi_invariants(kpis, config) == []
            assert kpis.overstock_value + kpis.understock_value <= kpis.inventory_value + 1e-6
            assert kpis.overstock_value <= 0.35 * kpis.inventory_value + 1e-6
            assert kpis.understock_value <= 0.20 * kpis.inventory_value + 1e-6
            if kpis.overstock_value > 0:
                assert kpis.understock_value <= 0.8 * kpis.overstock_value + 1e-6
            if mode == "snapshot":
                assert kpis.understock_parts == ()

    def test_check_reports_violations(self):
        broken = HealthRiskKpis(
            inventory_value=100.0,
            overstock_value=90.0,
            understock_value=0.0,
            overstock_parts=(_risk("A", 10.0),),
            understock_parts=(_risk("B", 5.0),),
        )
        violations = check_kpi_invariants(broken)

        assert any("35%" in v for v in violations)
        assert any("overstock parts do not sum" in v for v in violations)
        assert any("understock is zero" in v for v in violations)


class TestNormalizeKpis:
    """Each normalization step in isolation."""

    def test_overstock_ratio_cap(self):
        kpis = normalize_kpis(1000.0, [_risk("A", 400.0), _risk("B", 200.0)], [])

        assert kpis.overstock_value == pytest.approx(350.0)
        # Part contributions scaled by the same factor
        assert [p.contribution_eur for p in kpis.overstock_parts] == pytest.approx([233.333333, 116.666667])

    def test_understock_caps(self):
        kpis = normalize_kpis(1000.0, [_risk("A", 100.0)], [_risk("B", 300.0)])

        # 300 -> 200 (20% of inventory) -> 80 (80% of overstock)
        assert kpis.overstock_value == pytest.approx(100.0)
        assert kpis.understock_value == pytest.approx(80.0)
        assert sum_contributions(kpis.understock_parts) == pytest.approx(80.0)

    def test_understock_without_overstock(self):
        kpis = normalize_kpis(1000.0, [], [_risk("B", 300.0)])
        assert kpis.overstock_value == 0
        assert kpis.understock_value == pytest.approx(200.0)

    def test_risk_capped_at_inventory(self):
        kpis = normalize_kpis(100.0, [_risk("A", 500.0)], [_risk("B", 500.0)])

        assert kpis.overstock_value == pytest.approx(35.0)
        assert kpis.understock_value == pytest.approx(20.0)

    def test_zero_inventory_clears_lists(self):
        kpis = normalize_kpis(0.0, [_risk("A", 50.0)], [_risk("B", 50.0)])

        assert kpis.inventory_value == 0
        assert kpis.overstock_value == 0 and kpis.understock_value == 0
        assert kpis.overstock_parts == () and kpis.understock_parts == ()

    def test_non_finite_inputs_treated_as_zero(self):
        kpis = normalize_kpis(float("nan"), [_risk("A", float("inf"))], [])
        assert kpis.inventory_value == 0
        assert kpis.overstock_value == 0

    def test_within_caps_unchanged(self):
        parts = [_risk("A", 100.0)]
        kpis = normalize_kpis(1000.0, parts, [_risk("B", 50.0)])
        assert kpis.overstock_parts == tuple(parts)
        assert kpis.understock_value == pytest.approx(50.0)

    def test_custom_ratios(self):
        config = EngineConfig(max_overstock_ratio=0.1)
        kpis = normalize_kpis(1000.0, [_risk("A", 400.0)], [], config)
        assert kpis.overstock_value == pytest.approx(100.0)


class TestOverstockThreshold:

    def test_threshold_uses_max_of_lead_time_demand_and_lot(self):
        part = part_metrics_for("Actuator Rod", "AR-77102")  # safety 8, lot 8, 0.72/day x 24 days
        assert overstock_threshold(part) == pytest.approx(8 + 17.28)

    def test_threshold_factor(self):
        part = part_metrics_for("Actuator Rod", "AR-77102")
        config = EngineConfig(overstock_threshold_factor=0.8)
        assert overstock_threshold(part, config) == pytest.approx((8 + 17.28) * 0.8)


class TestAutoScaleAndDiagnostics:
    """Optional presentation scaling and logged anomalies."""

    def test_auto_scale_off_by_default(self, catalog_parts):
        kpis = compute_health_risk_kpis(catalog_parts, "snapshot", TODAY, WINDOW_END, TODAY)
        assert kpis.inventory_eur == 13062

    def test_auto_scale_to_millions(self, catalog_parts):
        config = EngineConfig(auto_scale_to_millions=True)
        kpis = compute_health_risk_kpis(catalog_parts, "snapshot", TODAY, WINDOW_END, TODAY, config)
        assert kpis.inventory_eur == 1306200

    def test_concentrated_overstock_warning(self, catalog_parts, caplog):
        config = EngineConfig(auto_scale_to_millions=True)
        with caplog.at_level(logging.WARNING, logger="inventory_risk.analytics.kpi"):
            kpis = compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY, config)

        assert kpis.inventory_eur == 8008000
        assert kpis.overstock_parts_count == 1
        assert "too concentrated" in caplog.text

    def test_diagnostics_off_is_silent(self, catalog_parts, caplog):
        config = EngineConfig(auto_scale_to_millions=True, diagnostics=False)
        with caplog.at_level(logging.WARNING, logger="inventory_risk.analytics.kpi"):
            compute_health_risk_kpis(catalog_parts, "projection", TODAY, WINDOW_END, TODAY, config)

        assert caplog.records == []

    def test_negative_projection_not_warned(self, caplog):
        """Negative projected stock is expected backlog, not an anomaly."""
        part = part_metrics_for("Gear Housing", "GH-90211")
        with caplog.at_level(logging.WARNING, logger="inventory_risk.analytics.kpi"):
            compute_health_risk_kpis([part], "projection", TODAY, WINDOW_END, TODAY)

        assert "invalid value" not in caplog.text
