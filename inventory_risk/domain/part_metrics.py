"""
Part metrics builder.

Each part gets a synthetic operating profile drawn from a PRNG seeded by its
part number, so the same part always has the same profile no matter which
opportunity set referenced it.
"""
from typing import Iterable, List

from .models import Opportunity, PartSource, PartMetrics, Plan
from .prng import Mulberry32, seed_from_string
from ..utils.numeric import round_half_up, round_decimals_half_up


def build_part_sources(opportunities: Iterable[Opportunity], plan: Plan) -> List[PartSource]:
    """
    Distinct parts referenced by a plan's opportunities.

    Deduplicated by part number; the first occurrence wins (keeps its name).
    """
    plan = Plan(plan)
    seen = {}
    for opp in opportunities:
        if opp.plan != plan:
            continue
        if opp.part_number not in seen:
            seen[opp.part_number] = PartSource(part_name=opp.part_name, part_number=opp.part_number)
    return list(seen.values())


def build_part_metrics(parts: Iterable[PartSource]) -> List[PartMetrics]:
    """
    Derive one PartMetrics per part source.

    Draw order (one draw each): unit value, current stock, safety stock,
    min lot, lead time, demand/day, weekly supply, supply offset, volatility.
    """
    return [part_metrics_for(part.part_name, part.part_number) for part in parts]


def part_metrics_for(part_name: str, part_number: str) -> PartMetrics:
    seed = seed_from_string(part_number)
    rng = Mulberry32(seed)

    unit_value_eur = round_half_up(40 + rng() * 180)
    current_stock = max(0, round_half_up(2 + rng() * 22))
    safety_stock = max(2, round_half_up(4 + rng() * 10))
    min_lot_size = max(1, round_half_up(2 + rng() * 12))
    lead_time_days = max(1, round_half_up(5 + rng() * 20))
    demand_per_day = max(0.0, round_decimals_half_up(0.2 + rng() * 1.6, 2))
    weekly_supply = max(0, round_half_up(rng() * 10))
    supply_offset_days = round_half_up(rng() * 6)
    volatility = max(0, round_half_up(rng() * 3))

    return PartMetrics(
        part_name=part_name,
        part_number=part_number,
        current_stock=current_stock,
        unit_value_eur=unit_value_eur,
        safety_stock=safety_stock,
        min_lot_size=min_lot_size,
        lead_time_days=lead_time_days,
        demand_per_day=demand_per_day,
        weekly_supply=weekly_supply,
        supply_offset_days=supply_offset_days,
        volatility=volatility,
        seed=seed,
    )
