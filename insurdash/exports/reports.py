from __future__ import annotations
from typing import Dict, Any, List


def import_report_md(row_count: int, issues: List[Dict[str, Any]], ignored: int = 0) -> str:
    lines = ["# Target Import Report", ""]
    lines.append(f"- status: {'FAIL' if issues else 'PASS'}")
    lines.append(f"- valid rows: {row_count}")
    if ignored:
        lines.append(f"- ignored unknown rows: {ignored}")
    if issues:
        lines.append("\n## Issues")
        for i in issues:
            where = f"line {i['row_index']}" if i.get("row_index") else "header"
            lines.append(f"- {where} [{i['type']}]: {i['message']}")
    return "\n".join(lines) + "\n"


def kpi_summary_md(kpi: Dict[str, Any], target: float | None, source: str | None) -> str:
    lines = ["# KPI Summary", ""]
    for k, v in kpi.items():
        lines.append(f"- {k}: {'—' if v is None else v}")
    lines.append("\n## Target")
    lines.append(f"- annual target: {'—' if target is None else target}")
    lines.append(f"- resolved from: {source or '—'}")
    return "\n".join(lines) + "\n"
