from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from insurdash.kpi.engine import safe_div
from insurdash.targets.dimensions import OVERALL_BIZ_TYPE


@dataclass(frozen=True)
class GoalMetrics:
    biz_type: str
    annual_target_init: float
    annual_target_tuned: float
    achieved: float
    initial_achievement_rate: Optional[float]
    tuned_achievement_rate: Optional[float]
    initial_gap: float
    tuned_gap: float
    share_of_total: Optional[float]


def goal_metrics(row, total_initial_target: float, achieved: float = 0.0) -> GoalMetrics:
    """Achievement rates, remaining gaps and share of the initial total for one goal row."""
    return GoalMetrics(
        biz_type=row.biz_type,
        annual_target_init=row.annual_target_init,
        annual_target_tuned=row.annual_target_tuned,
        achieved=achieved,
        initial_achievement_rate=safe_div(achieved, row.annual_target_init),
        tuned_achievement_rate=safe_div(achieved, row.annual_target_tuned),
        initial_gap=row.annual_target_init - achieved,
        tuned_gap=row.annual_target_tuned - achieved,
        share_of_total=safe_div(row.annual_target_init, total_initial_target),
    )


def build_display_rows(rows, achieved: Optional[Mapping[str, float]] = None) -> List[GoalMetrics]:
    achieved = achieved or {}
    overall = [r for r in rows if r.biz_type == OVERALL_BIZ_TYPE]
    # the 车险整体 row is already the total of the others
    total = overall[0].annual_target_init if overall else sum(r.annual_target_init for r in rows)
    out = [goal_metrics(r, total, float(achieved.get(r.biz_type, 0.0))) for r in rows]
    # largest initial target first
    out.sort(key=lambda m: -m.annual_target_init)
    return out


def format_rate(rate: Optional[float]) -> str:
    if rate is None:
        return "—"
    return f"{rate * 100:.2f}%"


def as_dict(m: GoalMetrics) -> Dict[str, object]:
    return {
        "biz_type": m.biz_type,
        "annual_target_init": m.annual_target_init,
        "annual_target_tuned": m.annual_target_tuned,
        "achieved": m.achieved,
        "initial_achievement_rate": m.initial_achievement_rate,
        "tuned_achievement_rate": m.tuned_achievement_rate,
        "initial_gap": m.initial_gap,
        "tuned_gap": m.tuned_gap,
        "share_of_total": m.share_of_total,
        "initial_achievement_label": format_rate(m.initial_achievement_rate),
        "tuned_achievement_label": format_rate(m.tuned_achievement_rate),
    }
