"""
Opportunity selection and status transitions.

Pure functions over immutable Opportunity records: every transition returns
a new list and leaves the input untouched. Selection mirrors what the
dashboard shows for a plan, timeframe and filter set.
"""
from dataclasses import replace
from datetime import date as Date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .calendar import DateLike, PresetKey, as_date, parse_iso_date
from .models import (
    Opportunity,
    OpportunityStatus,
    SuggestedAction,
    OpportunityFilters,
    Plan,
    DateRange,
    SnoozeRule,
    SnoozeRuleKind,
    DashboardContext,
)

# Forward widening steps (days) for the rolling presets when empty
WIDEN_STEPS_DAYS = (7, 14, 30, 60)
_WIDENING_PRESETS = (PresetKey.TODAY.value, PresetKey.TOMORROW.value)


def build_part_key(opp: Opportunity) -> str:
    return f"{opp.part_number} - {opp.part_name}"


def timeframe_scale(range_from: Optional[DateLike], range_to: Optional[DateLike],
                    reference_days: int = 90) -> float:
    """
    Smaller timeframe -> smaller value.

    Ratio of selected (inclusive) days to a reference window, capped at 1.
    An open range scales by 1.
    """
    if range_from is None or range_to is None:
        return 1.0
    days = max(1, (as_date(range_to) - as_date(range_from)).days + 1)
    return min(1.0, days / reference_days)


def in_date_range(opp: Opportunity, start: Optional[Date], end: Optional[Date]) -> bool:
    """True if the suggested date parses and lies within [start, end] (open ends allowed)."""
    when = parse_iso_date(opp.suggested_date)
    if when is None:
        return False
    if start is not None and when < start:
        return False
    if end is not None and when > end:
        return False
    return True


def filter_opportunities(opportunities: Iterable[Opportunity], filters: OpportunityFilters) -> List[Opportunity]:
    """Apply the user filters; an empty filter field matches everything."""
    result = list(opportunities)
    if filters.part_keys:
        result = [o for o in result if build_part_key(o) in filters.part_keys]
    if filters.suggested_actions:
        result = [o for o in result if o.suggested_action in filters.suggested_actions]
    if filters.customers:
        result = [o for o in result if o.customer in filters.customers]
    if filters.esc_levels:
        result = [o for o in result if o.esc_level in filters.esc_levels]
    if filters.statuses:
        result = [o for o in result if o.status in filters.statuses]
    return result


def opportunities_in_range(
    opportunities: Sequence[Opportunity],
    plan: Plan,
    date_range: DateRange,
    include_snoozed: bool = True,
    timeframe_preset: Optional[str] = None,
) -> List[Opportunity]:
    """
    Plan opportunities whose suggested date falls in the range.

    For the rolling "today"/"tomorrow" presets an empty result widens the
    window forward (7, 14, 30, 60 days from the range start) so the view is
    never blank.
    """
    plan = Plan(plan)
    start = as_date(date_range.start) if date_range.start is not None else None
    end = as_date(date_range.end) if date_range.end is not None else None

    def matches(lo: Optional[Date], hi: Optional[Date]) -> List[Opportunity]:
        return [
            o for o in opportunities
            if o.plan == plan
            and (include_snoozed or o.status != OpportunityStatus.SNOOZED)
            and in_date_range(o, lo, hi)
        ]

    result = matches(start, end)

    preset = timeframe_preset.value if isinstance(timeframe_preset, PresetKey) else timeframe_preset
    if not result and preset in _WIDENING_PRESETS and start is not None:
        for days in WIDEN_STEPS_DAYS:
            result = matches(start, start + timedelta(days=days))
            if result:
                break

    return result


def select_opportunities(opportunities: Sequence[Opportunity], context: DashboardContext,
                         include_snoozed: bool = True) -> List[Opportunity]:
    """Opportunities visible for a dashboard context (plan + range + filters)."""
    in_range = opportunities_in_range(
        opportunities, context.plan, context.date_range,
        include_snoozed=include_snoozed, timeframe_preset=context.timeframe_preset,
    )
    return filter_opportunities(in_range, context.filters)


def group_by_status(opportunities: Iterable[Opportunity]) -> Dict[OpportunityStatus, int]:
    counts = {status: 0 for status in OpportunityStatus}
    for o in opportunities:
        counts[o.status] += 1
    return counts


def group_by_action(opportunities: Iterable[Opportunity]) -> Dict[SuggestedAction, int]:
    counts = {action: 0 for action in SuggestedAction}
    for o in opportunities:
        counts[o.suggested_action] += 1
    return counts


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def _snoozed(opp: Opportunity) -> Opportunity:
    if opp.status == OpportunityStatus.SNOOZED:
        return opp
    return replace(opp, status=OpportunityStatus.SNOOZED, prev_status=opp.status)


def _released(opp: Opportunity) -> Opportunity:
    """Leave snooze: back to the remembered status (To Do if unknown)."""
    return replace(
        opp,
        status=opp.prev_status or OpportunityStatus.TODO,
        prev_status=None,
        snooze_rule_ids=(),
    )


def snooze_by_ids(opportunities: Sequence[Opportunity], ids: Iterable[str]) -> List[Opportunity]:
    targets = set(ids)
    return [_snoozed(o) if o.id in targets else o for o in opportunities]


def unsnooze_by_ids(opportunities: Sequence[Opportunity], ids: Iterable[str]) -> List[Opportunity]:
    targets = set(ids)
    return [
        _released(o) if o.id in targets and o.status == OpportunityStatus.SNOOZED else o
        for o in opportunities
    ]


def set_status_by_ids(opportunities: Sequence[Opportunity], ids: Iterable[str],
                      status: Union[OpportunityStatus, str]) -> List[Opportunity]:
    """
    Move opportunities to a status.

    Snoozing remembers the previous status; any other status clears the
    snooze bookkeeping.
    """
    status = OpportunityStatus(status)
    targets = set(ids)
    result = []
    for o in opportunities:
        if o.id not in targets:
            result.append(o)
        elif status == OpportunityStatus.SNOOZED:
            result.append(_snoozed(o))
        else:
            result.append(replace(o, status=status, prev_status=None, snooze_rule_ids=()))
    return result


def _rule_matches(rule: SnoozeRule, opp: Opportunity) -> bool:
    if rule.kind == SnoozeRuleKind.CUSTOMER:
        return opp.customer == rule.value
    return build_part_key(opp) == rule.value


def apply_snooze_rule(rule: SnoozeRule, opportunities: Sequence[Opportunity]) -> List[Opportunity]:
    """Snooze every matching opportunity and tag it with the rule id."""
    result = []
    for o in opportunities:
        if not _rule_matches(rule, o):
            result.append(o)
            continue
        if o.status == OpportunityStatus.SNOOZED and rule.id in o.snooze_rule_ids:
            result.append(o)
            continue
        prev = o.prev_status if o.status == OpportunityStatus.SNOOZED else o.status
        rule_ids = o.snooze_rule_ids if rule.id in o.snooze_rule_ids else o.snooze_rule_ids + (rule.id,)
        result.append(replace(o, status=OpportunityStatus.SNOOZED, prev_status=prev, snooze_rule_ids=rule_ids))
    return result


def add_snooze_rule(
    rules: Sequence[SnoozeRule],
    opportunities: Sequence[Opportunity],
    kind: Union[SnoozeRuleKind, str],
    value: str,
    rule_id: Optional[str] = None,
) -> Tuple[List[SnoozeRule], List[Opportunity], SnoozeRule]:
    """
    Register a snooze rule (once per kind/value) and apply it.

    Returns:
        (rules, opportunities, effective rule); newest rule first
    """
    kind = SnoozeRuleKind(kind)
    existing = next((r for r in rules if r.kind == kind and r.value == value), None)
    if existing is not None:
        return list(rules), apply_snooze_rule(existing, opportunities), existing

    rule = SnoozeRule(id=rule_id or f"{kind.value}:{value}", kind=kind, value=value)
    return [rule] + list(rules), apply_snooze_rule(rule, opportunities), rule


def remove_snooze_rule(
    rules: Sequence[SnoozeRule],
    opportunities: Sequence[Opportunity],
    rule_id: str,
) -> Tuple[List[SnoozeRule], List[Opportunity]]:
    """
    Drop a rule; opportunities held only by it leave snooze.
    """
    remaining_rules = [r for r in rules if r.id != rule_id]
    result = []
    for o in opportunities:
        if rule_id not in o.snooze_rule_ids:
            result.append(o)
            continue
        other_ids = tuple(i for i in o.snooze_rule_ids if i != rule_id)
        if other_ids:
            result.append(replace(o, snooze_rule_ids=other_ids))
        elif o.status == OpportunityStatus.SNOOZED:
            result.append(_released(o))
        else:
            result.append(replace(o, snooze_rule_ids=()))
    return remaining_rules, result
