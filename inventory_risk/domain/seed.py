"""
Synthetic opportunity generator.

Generates "realistic enough" opportunities for the dashboard:
- Different, fixed seeds per plan (stable but distinct datasets)
- Weighted categorical attributes (status, escalation, action)
- Dates spread forward from today: 70% within 90 days, 30% within a year
- Cash impact in a realistic 5k-150k EUR range

Identical (plan, count, today) always yields identical records.
"""
from datetime import date as Date, timedelta
from typing import List, Optional

from .models import Opportunity, Plan, OpportunityStatus, SuggestedAction, SupplyType
from .prng import Mulberry32, pick, weighted_choice
from ..config import EngineConfig, DEFAULT_CONFIG
from ..utils.numeric import round_half_up


PLAN_SEEDS = {
    Plan.ERP: 12345,
    Plan.ALT: 67890,
}

PARTS = [
    ("Valve Assembly", "VA-77821"),
    ("Bearing Kit", "BK-22109"),
    ("Sensor Module", "SM-45010"),
    ("Gear Housing", "GH-90211"),
    ("Hydraulic Pump", "HP-33018"),
    ("Nozzle Plate", "NP-11409"),
    ("Actuator Rod", "AR-77102"),
    ("Seal Pack", "SP-55219"),
]

SUPPLIERS = ["LunaCraft", "Celestial Dynamics", "AeroForge", "NovaComponents", "Orion Industrial"]
CUSTOMERS = ["SkyWorks", "BlueJet", "AeroLink", "StellarWings", "Atlas Airframes"]
ASSIGNEES = ["A. Martin", "S. Dubois", "C. Leroy", "M. Rossi"]
TEAMS = ["Supply", "Production", "Customer Support"]
PLANTS = ["1123", "3535", "2041", "8810"]
BUYER_CODES = ["AV67", "TY82", "BN29"]
MRP_CODES = ["XJ45", "WM22", "QR98", "ZL16"]

# Cumulative (upper_bound, value) bands
STATUS_BANDS = [
    (0.70, OpportunityStatus.BACKLOG),
    (0.82, OpportunityStatus.TODO),
    (0.90, OpportunityStatus.IN_PROGRESS),
    (0.96, OpportunityStatus.DONE),
    (0.99, OpportunityStatus.CANCELED),
    (1.00, OpportunityStatus.SNOOZED),
]

ACTION_BANDS = [
    (0.55, SuggestedAction.PUSH_OUT),
    (0.80, SuggestedAction.CANCEL),
    (1.00, SuggestedAction.PULL_IN),
]

ESC_LEVEL_BANDS = [
    (0.45, 1),
    (0.75, 2),
    (0.92, 3),
    (1.00, 4),
]

ALT_PULL_IN_PROBABILITY = 0.45
PO_PROBABILITY = 0.78
NEAR_TERM_PROBABILITY = 0.70
MIN_DELIVERY_OFFSET_DAYS = 3
DELIVERY_OFFSET_SPREAD_DAYS = 18


def generate_opportunities(
    plan: Plan,
    count: Optional[int] = None,
    today: Optional[Date] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[Opportunity]:
    """
    Generate the opportunity dataset of a plan.

    Args:
        plan: Plan to generate (selects the fixed seed)
        count: Number of records (default: config.opportunity_count)
        today: Reference day dates are spread from (default: today)
        config: Engine configuration (date windows, cash range)

    Returns:
        Ordered list of Opportunity records
    """
    plan = Plan(plan)
    if count is None:
        count = config.opportunity_count
    if today is None:
        today = Date.today()

    rng = Mulberry32(PLAN_SEEDS[plan])
    out: List[Opportunity] = []

    for i in range(count):
        part_name, part_number = pick(rng, PARTS)
        supplier = pick(rng, SUPPLIERS)
        customer = pick(rng, CUSTOMERS)
        plant = pick(rng, PLANTS)
        buyer_code = pick(rng, BUYER_CODES)
        mrp_code = pick(rng, MRP_CODES)
        status = weighted_choice(rng, STATUS_BANDS)
        esc_level = weighted_choice(rng, ESC_LEVEL_BANDS)

        # ALT plan skew: more Pull in actions
        if plan == Plan.ALT and rng() < ALT_PULL_IN_PROBABILITY:
            action = SuggestedAction.PULL_IN
        else:
            action = weighted_choice(rng, ACTION_BANDS)

        supply_type = SupplyType.PO if rng() < PO_PROBABILITY else SupplyType.PR

        near_term = rng() < NEAR_TERM_PROBABILITY
        window = config.near_term_days if near_term else config.horizon_days
        day_offset = int(rng() * window)
        suggested = today + timedelta(days=day_offset)

        delivery_offset = int(rng() * DELIVERY_OFFSET_SPREAD_DAYS) + MIN_DELIVERY_OFFSET_DAYS
        if action == SuggestedAction.PUSH_OUT:
            delivery = suggested - timedelta(days=delivery_offset)
        else:
            delivery = suggested

        cash_span = config.cash_impact_max - config.cash_impact_min
        cash_impact_eur = round_half_up(config.cash_impact_min + rng() * cash_span)

        if status == OpportunityStatus.BACKLOG:
            assignee, team = "", ""
        else:
            assignee = pick(rng, ASSIGNEES)
            team = pick(rng, TEAMS)

        out.append(Opportunity(
            id=f"{plan.value.lower()}_opp_{i + 1}",
            plan=plan,
            order_number=f"PO-{10000 + i}",
            part_name=part_name,
            part_number=part_number,
            suggested_action=action,
            suggested_date=suggested.isoformat(),
            delivery_date=delivery.isoformat(),
            status=status,
            supplier=supplier,
            customer=customer,
            esc_level=esc_level,
            plant=plant,
            buyer_code=buyer_code,
            mrp_code=mrp_code,
            supply_type=supply_type,
            cash_impact_eur=cash_impact_eur,
            assignee=assignee,
            team=team,
        ))

    return out
