from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import re
import unicodedata

from insurdash.errors import CsvIssue, ValidationError


_REPLACEMENT = "\ufffd"


def normalize_text(value: Optional[str]) -> str:
    """Canonicalize a dimension label for matching.

    - NFKC folds full-width characters and compatibility forms
    - repairs the usual mojibake tails ("客\ufffd" -> "客车", "货\ufffd" -> "货车")
    - collapses runs of whitespace and trims
    """
    s = str(value if value is not None else "").strip()
    if not s:
        return ""
    s = unicodedata.normalize("NFKC", s)
    damaged = _REPLACEMENT in s
    s = re.sub("客\ufffd+", "客车", s)
    s = re.sub("货\ufffd+", "货车", s)
    s = re.sub("旧车\ufffd+过户", "旧车过户", s)
    s = s.replace(_REPLACEMENT, "")
    if damaged and (s.endswith("客") or s.endswith("货")):
        s += "车"
    return re.sub(r"\s+", " ", s).strip()


_TRUE = {"1", "true", "t", "yes", "y", "是"}
_FALSE = {"0", "false", "f", "no", "n", "否"}


def parse_flag(value: Any) -> Optional[bool]:
    """Tri-state flag: None / "" -> None, common yes/no spellings -> bool."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    s = str(value).strip().lower()
    if not s:
        return None
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"not a yes/no value: {value!r}")


def _num(row: Dict[str, Any], key: str) -> float:
    v = row.get(key)
    if v in (None, ""):
        return 0.0
    return float(v)


@dataclass(frozen=True)
class InsuranceRecord:
    policy_start_year: int
    week_number: int  # 1-based week of the policy year
    signed_premium_yuan: float = 0.0
    matured_premium_yuan: float = 0.0
    reported_claim_payment_yuan: float = 0.0  # loss amount
    expense_amount_yuan: float = 0.0
    policy_count: int = 0
    claim_case_count: int = 0
    business_type_category: str = ""
    third_level_organization: str = ""
    customer_category_3: str = ""
    insurance_type: str = ""
    coverage_type: str = ""
    renewal_status: str = ""
    terminal_source: str = ""
    is_new_energy_vehicle: Optional[bool] = None

    @staticmethod
    def from_dict(row: Dict[str, Any]) -> "InsuranceRecord":
        """Build a record from an already-parsed mapping; dimension tags are normalized."""
        try:
            year = int(row["policy_start_year"])
            week = int(row["week_number"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(
                "record is missing policy_start_year/week_number",
                [CsvIssue(type="INVALID_RECORD", message=str(e))],
            ) from e
        if week < 1:
            raise ValidationError(
                f"week_number must be >= 1, got {week}",
                [CsvIssue(type="INVALID_RECORD", message="week_number < 1", raw_value=str(week))],
            )
        try:
            nev = parse_flag(row.get("is_new_energy_vehicle"))
        except ValueError as e:
            raise ValidationError(
                str(e),
                [CsvIssue(type="INVALID_RECORD", message=str(e), raw_value=str(row.get("is_new_energy_vehicle")))],
            ) from e
        return InsuranceRecord(
            policy_start_year=year,
            week_number=week,
            signed_premium_yuan=_num(row, "signed_premium_yuan"),
            matured_premium_yuan=_num(row, "matured_premium_yuan"),
            reported_claim_payment_yuan=_num(row, "reported_claim_payment_yuan"),
            expense_amount_yuan=_num(row, "expense_amount_yuan"),
            policy_count=int(_num(row, "policy_count")),
            claim_case_count=int(_num(row, "claim_case_count")),
            business_type_category=normalize_text(row.get("business_type_category")),
            third_level_organization=normalize_text(row.get("third_level_organization")),
            customer_category_3=normalize_text(row.get("customer_category_3")),
            insurance_type=normalize_text(row.get("insurance_type")),
            coverage_type=normalize_text(row.get("coverage_type")),
            renewal_status=normalize_text(row.get("renewal_status")),
            terminal_source=normalize_text(row.get("terminal_source")),
            is_new_energy_vehicle=nev,
        )
