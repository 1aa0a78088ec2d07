from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
import csv
import io
import math

from insurdash.errors import CsvIssue, ValidationError
from insurdash.records.model import normalize_text

BIZ_TYPE_COLUMN = "业务类型"
TARGET_COLUMN = "年度目标（万）"
EXPECTED_COLUMNS = (BIZ_TYPE_COLUMN, TARGET_COLUMN)


@dataclass(frozen=True)
class GoalCsvRow:
    biz_type: str
    annual_target: float


@dataclass(frozen=True)
class GoalCsvParseResult:
    rows: List[GoalCsvRow]
    ignored_unknown_count: int = 0


class GoalCsvParseError(ValidationError):
    """Raised with every issue found; ``valid_rows`` holds the rows that passed."""

    def __init__(
        self,
        message: str,
        issues: List[CsvIssue],
        valid_rows: List[GoalCsvRow] | None = None,
        ignored_unknown_count: int = 0,
    ):
        super().__init__(message, issues)
        self.valid_rows: List[GoalCsvRow] = list(valid_rows or [])
        self.ignored_unknown_count = ignored_unknown_count


def _parse_number(raw: str) -> Optional[float]:
    try:
        v = float(raw)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def parse_goal_csv(
    content: str,
    known_business_types: Sequence[str],
    unknown_strategy: str = "block",
) -> GoalCsvParseResult:
    """Parse a target CSV (业务类型,年度目标（万）).

    - header cells are trimmed; blank lines are skipped; row order is kept
    - empty, duplicate, non-numeric, negative and unknown rows are reported
      with their 1-based line number (header is line 1)
    - business types are compared after normalize_text, so width variants are
      duplicates; accepted rows carry the known spelling
    - unknown business types are dropped and counted when unknown_strategy == "ignore"
    Raises GoalCsvParseError when any issue is found.
    """
    text = content.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text))
    header: Optional[List[str]] = None
    for cells in reader:
        if any(c.strip() for c in cells):
            header = [c.strip() for c in cells]
            break
    if header is None:
        raise GoalCsvParseError(
            "CSV导入失败",
            [CsvIssue(type="MISSING_COLUMN", message="CSV缺少表头，无法识别字段")],
        )
    missing = [c for c in EXPECTED_COLUMNS if c not in header]
    if missing:
        raise GoalCsvParseError(
            "CSV导入失败",
            [CsvIssue(type="MISSING_COLUMN", message=f"缺少必填列：{c}") for c in missing],
        )
    biz_idx = header.index(BIZ_TYPE_COLUMN)
    target_idx = header.index(TARGET_COLUMN)
    # normalized label -> spelling used by the target tables
    known = {normalize_text(k): k for k in known_business_types}

    issues: List[CsvIssue] = []
    rows: List[GoalCsvRow] = []
    seen: set[str] = set()
    ignored = 0
    for cells in reader:
        if not any(c.strip() for c in cells):
            continue
        line = reader.line_num
        biz = cells[biz_idx].strip() if biz_idx < len(cells) else ""
        raw_target = cells[target_idx].strip() if target_idx < len(cells) else ""

        if not biz:
            issues.append(CsvIssue(type="EMPTY_VALUE", message="业务类型不能为空", row_index=line))
            continue
        key = normalize_text(biz)
        if key in seen:
            issues.append(CsvIssue(type="DUPLICATE_BIZ_TYPE", message=f"重复的业务类型：{biz}", row_index=line, biz_type=biz))
            continue
        seen.add(key)
        if not raw_target:
            issues.append(CsvIssue(type="EMPTY_VALUE", message=f"业务类型 {biz} 的年度目标（万）不能为空", row_index=line, biz_type=biz))
            continue
        value = _parse_number(raw_target)
        if value is None:
            issues.append(CsvIssue(type="NON_NUMERIC", message=f"业务类型 {biz} 的年度目标（万）必须为数字", row_index=line, biz_type=biz, raw_value=raw_target))
            continue
        if value < 0:
            issues.append(CsvIssue(type="NEGATIVE_VALUE", message=f"业务类型 {biz} 的年度目标（万）不能为负数", row_index=line, biz_type=biz, raw_value=raw_target))
            continue
        if key not in known:
            if unknown_strategy == "ignore":
                ignored += 1
                continue
            issues.append(CsvIssue(type="UNKNOWN_BIZ_TYPE", message=f"未知业务类型：{biz}", row_index=line, biz_type=biz))
            continue
        rows.append(GoalCsvRow(biz_type=known[key], annual_target=value))

    if issues:
        raise GoalCsvParseError("CSV导入失败", issues, valid_rows=rows, ignored_unknown_count=ignored)
    return GoalCsvParseResult(rows=rows, ignored_unknown_count=ignored)


def format_target(value: float) -> str:
    v = float(value)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def serialize_goal_rows(rows: Iterable[Tuple[str, float]]) -> str:
    """Header plus one line per (biz_type, value); '\\n' endings with a trailing newline."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(EXPECTED_COLUMNS)
    for biz, value in rows:
        w.writerow([biz, format_target(value)])
    return buf.getvalue()
