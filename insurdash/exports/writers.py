from __future__ import annotations
from typing import List, Dict, Any, Iterable, Tuple
import csv
import io

SCHEMAS = {
    "kpi_trend": [
        "period","year","week","signed_premium","matured_premium","total_loss","loss_ratio","contribution_margin_ratio","expense_ratio","maturity_ratio","target_achievement","policy_count","claim_case_count",
        "contribution_margin_amount","variable_cost_ratio","matured_claim_ratio","average_premium","average_claim","average_expense","average_contribution"
    ],
    "goal_metrics": [
        "biz_type","annual_target_init","annual_target_tuned","achieved","initial_achievement_rate","tuned_achievement_rate","initial_gap","tuned_gap","share_of_total"
    ],
}


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    # None renders as an empty cell; undefined ratios are never written as 0
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    w.writeheader()
    for r in rows:
        w.writerow({k: r.get(k) for k in columns})
    return buf.getvalue()


def write_kpi_trend(series: Iterable[Tuple[Any, Any]]) -> str:
    rows = []
    for key, kpi in series:
        row = kpi.to_dict()
        row.update({"period": key.label, "year": key.year, "week": key.week})
        rows.append(row)
    return write_csv(rows, SCHEMAS["kpi_trend"])


def write_goal_metrics(rows: Iterable[Dict[str, Any]]) -> str:
    return write_csv(rows, SCHEMAS["goal_metrics"])
