from __future__ import annotations
from typing import Dict, Iterable, List, NamedTuple, Optional, Union

from insurdash.records.model import InsuranceRecord


class PeriodKey(NamedTuple):
    year: int
    week: int

    @staticmethod
    def parse(label: str) -> "PeriodKey":
        """Parse "2025-9" / "2025-09" style labels into a numeric key."""
        year, sep, week = str(label).strip().partition("-")
        if not sep:
            raise ValueError(f"not a period label: {label!r}")
        return PeriodKey(int(year), int(week))

    @staticmethod
    def of(record: InsuranceRecord) -> "PeriodKey":
        return PeriodKey(int(record.policy_start_year), int(record.week_number))

    @property
    def label(self) -> str:
        return f"{self.year}-{self.week}"


def group_by_period(records: Iterable[InsuranceRecord]) -> Dict[PeriodKey, List[InsuranceRecord]]:
    """Bucket records by (policy_start_year, week_number).

    Every record lands in exactly one bucket; input order is kept within a bucket.
    """
    groups: Dict[PeriodKey, List[InsuranceRecord]] = {}
    for r in records:
        groups.setdefault(PeriodKey.of(r), []).append(r)
    return groups


def sorted_periods(keys: Union[Dict[PeriodKey, object], Iterable[PeriodKey]]) -> List[PeriodKey]:
    # numeric tuple order; a composite "2025-9" string would sort after "2025-10"
    return sorted(PeriodKey(int(k[0]), int(k[1])) for k in keys)


def previous_period(key: PeriodKey, available: Iterable[PeriodKey]) -> Optional[PeriodKey]:
    earlier = [k for k in available if k < key]
    return max(earlier) if earlier else None


def recent_periods(keys: Iterable[PeriodKey], limit: Optional[int]) -> List[PeriodKey]:
    ordered = sorted_periods(keys)
    if limit is None or limit <= 0:
        return ordered
    return ordered[-limit:]
