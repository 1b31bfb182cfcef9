"""
Tests for the synthetic opportunity generator (inventory_risk/domain/seed.py).

Golden records are pinned for today = 2026-01-15.
"""

import pytest
from collections import Counter
from datetime import date

from inventory_risk.config import EngineConfig
from inventory_risk.domain.models import Plan, OpportunityStatus, SuggestedAction, SupplyType
from inventory_risk.domain.seed import generate_opportunities, PARTS


TODAY = date(2026, 1, 15)


@pytest.fixture(scope="module")
def erp_opps():
    return generate_opportunities(Plan.ERP, today=TODAY)


@pytest.fixture(scope="module")
def alt_opps():
    return generate_opportunities(Plan.ALT, today=TODAY)


class TestGoldenRecords:
    """First records of each plan match the reference generator."""

    def test_erp_first_record(self):
        opp = generate_opportunities(Plan.ERP, count=3, today=TODAY)[0]

        assert opp.id == "erp_opp_1"
        assert opp.order_number == "PO-10000"
        assert (opp.part_name, opp.part_number) == ("Seal Pack", "SP-55219")
        assert opp.suggested_action == SuggestedAction.PULL_IN
        assert opp.suggested_date == "2026-04-10"
        assert opp.delivery_date == "2026-04-10"
        assert opp.status == OpportunityStatus.BACKLOG
        assert opp.assignee == ""
        assert opp.team == ""
        assert opp.supplier == "Celestial Dynamics"
        assert opp.customer == "AeroLink"
        assert opp.esc_level == 3
        assert opp.plant == "8810"
        assert opp.buyer_code == "TY82"
        assert opp.mrp_code == "WM22"
        assert opp.supply_type == SupplyType.PR
        assert opp.cash_impact_eur == 145555

    def test_erp_second_and_third_records(self):
        _, second, third = generate_opportunities(Plan.ERP, count=3, today=TODAY)

        assert second.id == "erp_opp_2"
        assert second.order_number == "PO-10001"
        assert second.part_number == "NP-11409"
        assert second.suggested_action == SuggestedAction.CANCEL
        assert second.suggested_date == "2026-01-21"
        assert second.delivery_date == "2026-01-21"
        assert second.plant == "3535"
        assert second.buyer_code == "BN29"
        assert second.mrp_code == "ZL16"
        assert second.supply_type == SupplyType.PO
        assert second.cash_impact_eur == 34810

        assert third.part_number == "AR-77102"
        assert third.suggested_action == SuggestedAction.PUSH_OUT
        assert third.suggested_date == "2026-02-01"
        assert third.delivery_date == "2026-01-19"
        assert third.supplier == "LunaCraft"
        assert third.customer == "BlueJet"
        assert third.esc_level == 1
        assert third.cash_impact_eur == 106866

    def test_alt_first_records(self):
        first, second = generate_opportunities(Plan.ALT, count=2, today=TODAY)

        assert first.id == "alt_opp_1"
        assert first.part_number == "GH-90211"
        assert first.suggested_action == SuggestedAction.PUSH_OUT
        assert first.suggested_date == "2026-10-23"
        assert first.delivery_date == "2026-10-05"
        assert first.supplier == "AeroForge"
        assert first.esc_level == 2
        assert first.cash_impact_eur == 80668

        assert second.part_number == "VA-77821"
        assert second.suggested_action == SuggestedAction.CANCEL
        assert second.suggested_date == "2026-02-28"
        assert second.customer == "SkyWorks"
        assert second.cash_impact_eur == 38349

    def test_full_dataset_aggregates(self, erp_opps, alt_opps):
        assert len(erp_opps) == 220
        assert sum(o.cash_impact_eur for o in erp_opps) == 17339973
        assert sum(o.cash_impact_eur for o in alt_opps) == 16904075
        assert erp_opps[-1].id == "erp_opp_220"
        assert erp_opps[-1].suggested_date == "2026-02-02"
        assert erp_opps[-1].cash_impact_eur == 88768

    def test_erp_status_distribution(self, erp_opps):
        counts = Counter(o.status for o in erp_opps)
        assert counts[OpportunityStatus.BACKLOG] == 155
        assert counts[OpportunityStatus.TODO] == 21
        assert counts[OpportunityStatus.IN_PROGRESS] == 17
        assert counts[OpportunityStatus.DONE] == 18
        assert counts[OpportunityStatus.CANCELED] == 6
        assert counts[OpportunityStatus.SNOOZED] == 3


class TestPlanSkew:
    """ALT plan favors Pull in."""

    def test_action_distribution(self, erp_opps, alt_opps):
        erp = Counter(o.suggested_action for o in erp_opps)
        alt = Counter(o.suggested_action for o in alt_opps)

        assert erp[SuggestedAction.PUSH_OUT] == 122
        assert erp[SuggestedAction.CANCEL] == 58
        assert erp[SuggestedAction.PULL_IN] == 40
        assert alt[SuggestedAction.PULL_IN] == 127
        assert alt[SuggestedAction.CANCEL] == 29
        assert alt[SuggestedAction.PUSH_OUT] == 64


class TestGeneratorInvariants:
    """Structural properties that hold for every record."""

    @pytest.mark.parametrize("plan", list(Plan))
    def test_deterministic(self, plan):
        assert generate_opportunities(plan, today=TODAY) == generate_opportunities(plan, today=TODAY)

    def test_plans_differ(self, erp_opps, alt_opps):
        assert [o.part_number for o in erp_opps] != [o.part_number for o in alt_opps]

    @pytest.mark.parametrize("plan", list(Plan))
    def test_dates_cash_and_assignment(self, plan):
        config = EngineConfig()
        for opp in generate_opportunities(plan, today=TODAY):
            suggested = date.fromisoformat(opp.suggested_date)
            delivery = date.fromisoformat(opp.delivery_date)

            assert 0 <= (suggested - TODAY).days < config.horizon_days
            if opp.suggested_action == SuggestedAction.PUSH_OUT:
                assert 3 <= (suggested - delivery).days <= 20
            else:
                assert delivery == suggested

            assert config.cash_impact_min <= opp.cash_impact_eur <= config.cash_impact_max
            assert 1 <= opp.esc_level <= 4
            assert (opp.part_name, opp.part_number) in PARTS

            if opp.status == OpportunityStatus.BACKLOG:
                assert opp.assignee == "" and opp.team == ""
            else:
                assert opp.assignee and opp.team

    def test_count_and_config(self):
        config = EngineConfig(opportunity_count=5, cash_impact_min=1000, cash_impact_max=1000)
        opps = generate_opportunities(Plan.ERP, today=TODAY, config=config)

        assert len(opps) == 5
        assert all(o.cash_impact_eur == 1000 for o in opps)

    def test_zero_count(self):
        assert generate_opportunities(Plan.ALT, count=0, today=TODAY) == []

    def test_invalid_plan(self):
        with pytest.raises(ValueError):
            generate_opportunities("NOPE", today=TODAY)
