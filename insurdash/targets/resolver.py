from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from insurdash.records.model import normalize_text
from insurdash.targets.dimensions import OVERALL_BIZ_TYPE

DIMENSIONS: Tuple[str, ...] = (
    "business_type",
    "third_level_organization",
    "customer_category",
    "insurance_type",
)


def _freeze(entries: Optional[Mapping[str, float]]) -> Mapping[str, float]:
    out: Dict[str, float] = {}
    for raw, value in (entries or {}).items():
        key = normalize_text(raw)
        if key:
            out[key] = max(0.0, float(value))
    return MappingProxyType(out)


@dataclass(frozen=True)
class TargetTable:
    """Annual targets per normalized dimension value, plus the overall scalar."""

    business_type: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    third_level_organization: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    customer_category: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    insurance_type: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    overall: float = 0.0

    @staticmethod
    def build(
        business_type: Optional[Mapping[str, float]] = None,
        third_level_organization: Optional[Mapping[str, float]] = None,
        customer_category: Optional[Mapping[str, float]] = None,
        insurance_type: Optional[Mapping[str, float]] = None,
        overall: float = 0.0,
    ) -> "TargetTable":
        return TargetTable(
            business_type=_freeze(business_type),
            third_level_organization=_freeze(third_level_organization),
            customer_category=_freeze(customer_category),
            insurance_type=_freeze(insurance_type),
            overall=max(0.0, float(overall or 0.0)),
        )

    @staticmethod
    def from_version(version, dimensions: Optional[Mapping[str, Mapping[str, float]]] = None) -> "TargetTable":
        """Business-type lookup from a target version; other dimensions come from ``dimensions``.

        The overall scalar is the 车险整体 row when present, else the sum of all rows.
        """
        by_biz = {row.biz_type: version.value_of(row) for row in version.rows}
        overall = by_biz.get(OVERALL_BIZ_TYPE)
        if overall is None:
            overall = sum(by_biz.values())
        extra = dict(dimensions or {})
        return TargetTable.build(
            business_type=by_biz,
            third_level_organization=extra.get("third_level_organization"),
            customer_category=extra.get("customer_category"),
            insurance_type=extra.get("insurance_type"),
            overall=overall,
        )


@dataclass(frozen=True)
class DimensionLookup:
    dimension: str
    selections: Callable[[object], Sequence[str]]
    table: Callable[[TargetTable], Mapping[str, float]]


# Narrower selections first; the first level with a positive sum wins.
CASCADE: Tuple[DimensionLookup, ...] = (
    DimensionLookup("business_type", lambda f: f.business_types, lambda t: t.business_type),
    DimensionLookup("third_level_organization", lambda f: f.organizations, lambda t: t.third_level_organization),
    DimensionLookup("customer_category", lambda f: f.customer_categories, lambda t: t.customer_category),
    DimensionLookup("insurance_type", lambda f: f.insurance_types, lambda t: t.insurance_type),
)


def level_sum(selected: Iterable[str], table: Mapping[str, float]) -> float:
    return sum(table.get(normalize_text(s), 0.0) for s in selected)


def resolve_target_with_source(
    filters, table: Optional[TargetTable]
) -> Tuple[Optional[float], Optional[str]]:
    if table is None:
        return None, None
    for lookup in CASCADE:
        selected = list(lookup.selections(filters) or [])
        if not selected:
            continue
        total = level_sum(selected, lookup.table(table))
        # an explicit zero target means "no target" and falls through
        if total > 0:
            return total, lookup.dimension
    if table.overall > 0:
        return table.overall, "overall"
    return None, None


def resolve_target(filters, table: Optional[TargetTable]) -> Optional[float]:
    """Applicable annual target for the selections in ``filters``, or None."""
    return resolve_target_with_source(filters, table)[0]


def dimension_targets(table: TargetTable) -> Dict[str, List[Tuple[str, float]]]:
    return {d: sorted(getattr(table, d).items()) for d in DIMENSIONS}
