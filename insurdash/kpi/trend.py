from __future__ import annotations
from typing import Iterable, List, Optional, Tuple

from insurdash.kpi.engine import CostRule, KPIResult, calculate, calculate_increment
from insurdash.periods.grouping import PeriodKey, group_by_period, recent_periods, sorted_periods
from insurdash.records.model import InsuranceRecord

MODES = ("current", "increment")


def weekly_series(
    records: Iterable[InsuranceRecord],
    mode: str = "current",
    target_scope: Optional[float] = None,
    limit: Optional[int] = None,
    cost_rule: Optional[CostRule] = None,
) -> List[Tuple[PeriodKey, KPIResult]]:
    """Per-week KPIs in chronological order.

    - mode "current": absolute KPIs of each bucket
    - mode "increment": delta against the chronologically previous bucket;
      the earliest bucket has no predecessor and is reported in absolute terms
    - limit keeps the most recent N weeks (predecessors are still taken from the full set)
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
    groups = group_by_period(records)
    if not groups:
        return []
    ordered = sorted_periods(groups)
    keep = set(recent_periods(ordered, limit))

    out: List[Tuple[PeriodKey, KPIResult]] = []
    prev: Optional[PeriodKey] = None
    for key in ordered:
        if key in keep:
            if mode == "increment" and prev is not None:
                kpi = calculate_increment(groups[key], groups[prev], target_scope, cost_rule)
            else:
                kpi = calculate(groups[key], target_scope, cost_rule)
            out.append((key, kpi))
        prev = key
    return out


def metric_values(series: List[Tuple[PeriodKey, KPIResult]], name: str) -> List[Optional[float]]:
    # None stays None: an undefined ratio is not a zero ratio
    return [getattr(kpi, name) for _, kpi in series]
