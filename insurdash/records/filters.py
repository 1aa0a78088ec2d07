from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from insurdash.errors import CsvIssue, ValidationError
from insurdash.records.model import InsuranceRecord, normalize_text, parse_flag


@dataclass(frozen=True)
class FilterState:
    years: Tuple[int, ...] = ()
    weeks: Tuple[int, ...] = ()
    organizations: Tuple[str, ...] = ()
    insurance_types: Tuple[str, ...] = ()
    business_types: Tuple[str, ...] = ()
    coverage_types: Tuple[str, ...] = ()
    customer_categories: Tuple[str, ...] = ()
    terminal_sources: Tuple[str, ...] = ()
    renewal_statuses: Tuple[str, ...] = ()
    is_new_energy: Optional[bool] = None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "FilterState":
        def ints(key: str) -> Tuple[int, ...]:
            return tuple(int(v) for v in (data.get(key) or []))

        def labels(key: str) -> Tuple[str, ...]:
            return tuple(n for n in (normalize_text(v) for v in (data.get(key) or [])) if n)

        try:
            nev = parse_flag(data.get("is_new_energy"))
        except ValueError as e:
            raise ValidationError(str(e), [CsvIssue(type="INVALID_FILTER", message=str(e))]) from e
        return FilterState(
            years=ints("years"),
            weeks=ints("weeks"),
            organizations=labels("organizations"),
            insurance_types=labels("insurance_types"),
            business_types=labels("business_types"),
            coverage_types=labels("coverage_types"),
            customer_categories=labels("customer_categories"),
            terminal_sources=labels("terminal_sources"),
            renewal_statuses=labels("renewal_statuses"),
            is_new_energy=nev,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "years": list(self.years),
            "weeks": list(self.weeks),
            "organizations": list(self.organizations),
            "insurance_types": list(self.insurance_types),
            "business_types": list(self.business_types),
            "coverage_types": list(self.coverage_types),
            "customer_categories": list(self.customer_categories),
            "terminal_sources": list(self.terminal_sources),
            "renewal_statuses": list(self.renewal_statuses),
            "is_new_energy": self.is_new_energy,
        }


# (filter attribute, record attribute)
_LABEL_FILTERS = (
    ("organizations", "third_level_organization"),
    ("insurance_types", "insurance_type"),
    ("business_types", "business_type_category"),
    ("coverage_types", "coverage_type"),
    ("customer_categories", "customer_category_3"),
    ("terminal_sources", "terminal_source"),
    ("renewal_statuses", "renewal_status"),
)


def matches(record: InsuranceRecord, filters: FilterState, exclude: Iterable[str] = ()) -> bool:
    skip = set(exclude)
    if "years" not in skip and filters.years and record.policy_start_year not in filters.years:
        return False
    if "weeks" not in skip and filters.weeks and record.week_number not in filters.weeks:
        return False
    for fname, rname in _LABEL_FILTERS:
        if fname in skip:
            continue
        selected = getattr(filters, fname)
        if selected and getattr(record, rname) not in selected:
            return False
    if "is_new_energy" not in skip and filters.is_new_energy is not None:
        if record.is_new_energy_vehicle != filters.is_new_energy:
            return False
    return True


def apply_filters(
    records: Iterable[InsuranceRecord], filters: FilterState, exclude: Iterable[str] = ()
) -> List[InsuranceRecord]:
    """Keep records matching every non-empty selection; ``exclude`` names filters to ignore."""
    skip = tuple(exclude)
    return [r for r in records if matches(r, filters, skip)]
