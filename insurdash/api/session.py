from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from insurdash.cache.fingerprint import fingerprint
from insurdash.cache.store import ResultCache
from insurdash.config.env import CacheConfig, TargetConfig, get_cache_config, get_target_config
from insurdash.errors import CsvIssue, NotFoundError, ValidationError
from insurdash.kpi.engine import CostRule, KPIResult, calculate, calculate_increment
from insurdash.kpi.trend import MODES, weekly_series
from insurdash.periods.grouping import PeriodKey, group_by_period, previous_period, sorted_periods
from insurdash.records.filters import FilterState, apply_filters
from insurdash.records.model import InsuranceRecord
from insurdash.targets.dimensions import OVERALL_BIZ_TYPE
from insurdash.targets.resolver import DIMENSIONS, TargetTable, resolve_target_with_source
from insurdash.targets.versions import TargetVersion, TargetVersionStore

logger = structlog.get_logger(__name__)

# dimensions below business type; business type targets live in the main store
DIMENSION_STORES = DIMENSIONS[1:]


class DashboardSession:
    """Single-owner context for one dashboard session.

    Owns the record set, the active filters, the target version store and the
    result cache. The cache is cleared whenever records, dimension targets or
    the current target version change.
    """

    def __init__(
        self,
        store: Optional[TargetVersionStore] = None,
        cache: Optional[ResultCache] = None,
        target_config: Optional[TargetConfig] = None,
        cache_config: Optional[CacheConfig] = None,
        cost_rule: Optional[CostRule] = None,
        dimension_targets: Optional[Mapping[str, Mapping[str, float]]] = None,
    ):
        self.target_config = target_config or get_target_config()
        self.cache_config = cache_config or get_cache_config()
        self.store = store or TargetVersionStore(base_year=self.target_config.base_year)
        self.cache: ResultCache = cache if cache is not None else ResultCache()
        self.cost_rule = cost_rule
        self.records: Tuple[InsuranceRecord, ...] = ()
        self.filters = FilterState()
        initial = dict(dimension_targets or {})
        # organization / customer category / insurance type targets keep their own version history
        self.dimension_stores: Dict[str, TargetVersionStore] = {
            d: TargetVersionStore(initial_rows=list((initial.get(d) or {}).items()), base_year=self.target_config.base_year)
            for d in DIMENSION_STORES
        }
        self._data_revision = 0
        self._target_revision = 0
        self._table = self._build_table()
        self.store.subscribe(self._on_version_change)
        for dim_store in self.dimension_stores.values():
            dim_store.subscribe(self._on_version_change)

    # --- invalidation hooks ------------------------------------------------

    def _invalidate(self, reason: str) -> None:
        try:
            self.cache.clear()
        except Exception as e:
            logger.warning("cache.fault", op="clear", error=str(e))
        logger.info("session.invalidated", reason=reason)

    def _build_table(self) -> TargetTable:
        dims = {d: dict(s.get_current_version().targets()) for d, s in self.dimension_stores.items()}
        return TargetTable.from_version(self.store.get_current_version(), dims)

    def _on_version_change(self, version: TargetVersion) -> None:
        self._table = self._build_table()
        self._target_revision += 1
        self._invalidate("target_version")

    # --- inputs --------------------------------------------------------------

    def load_records(self, records: Iterable[Any]) -> int:
        self.records = tuple(r if isinstance(r, InsuranceRecord) else InsuranceRecord.from_dict(r) for r in records)
        self._data_revision += 1
        self._invalidate("records")
        return len(self.records)

    def set_filters(self, filters: FilterState | Dict[str, Any]) -> FilterState:
        self.filters = filters if isinstance(filters, FilterState) else FilterState.from_dict(filters)
        return self.filters

    def dimension_store(self, dimension: str) -> TargetVersionStore:
        try:
            return self.dimension_stores[dimension]
        except KeyError:
            raise NotFoundError(f"未知维度：{dimension}") from None

    def set_dimension_targets(self, dimension_targets: Mapping[str, Mapping[str, float]]) -> Dict[str, str]:
        """Append a tuned version per given dimension (万 yuan); returns the new version ids.

        Dimensions left out keep their current version.
        """
        unknown = [d for d in dimension_targets if d not in self.dimension_stores]
        if unknown:
            raise ValidationError(
                f"unknown target dimension: {', '.join(unknown)}",
                [CsvIssue(type="UNKNOWN_DIMENSION", message=f"未知维度：{d}") for d in unknown],
            )
        return {
            d: self.dimension_stores[d].create_tuned_version(list(entries.items()))
            for d, entries in dimension_targets.items()
        }

    @property
    def target_table(self) -> TargetTable:
        return self._table

    # --- targets -------------------------------------------------------------

    def current_target(self) -> Tuple[Optional[float], Optional[str]]:
        """Resolved annual target in table units (万 yuan) and the level it came from."""
        return resolve_target_with_source(self.filters, self._table)

    def target_scope_yuan(self) -> Optional[float]:
        value, _ = self.current_target()
        return value * self.target_config.unit_yuan if value is not None else None

    def achieved_by_business_type(self) -> Dict[str, float]:
        """Signed premium per business type of the filtered records, in target units."""
        unit = self.target_config.unit_yuan
        out: Dict[str, float] = {}
        total = 0.0
        for r in self.filtered_records():
            out[r.business_type_category] = out.get(r.business_type_category, 0.0) + r.signed_premium_yuan / unit
            total += r.signed_premium_yuan / unit
        out[OVERALL_BIZ_TYPE] = total
        return out

    # --- computations --------------------------------------------------------

    def filtered_records(self) -> List[InsuranceRecord]:
        return apply_filters(self.records, self.filters)

    def _cached(self, key: str, compute: Callable[[], Any]) -> Any:
        if not self.cache_config.enabled:
            return compute()
        try:
            hit = self.cache.get(key)
        except Exception as e:
            logger.warning("cache.fault", op="get", error=str(e))
            hit = None
        if hit is not None:
            return hit
        value = compute()
        try:
            self.cache.set(key, value)
        except Exception as e:
            logger.warning("cache.fault", op="set", error=str(e))
        return value

    def _key(self, kind: str, mode: str, target: Optional[float], **extra: Any) -> str:
        return fingerprint(
            self.filters,
            mode,
            target,
            revision={"data": self._data_revision, "targets": self._target_revision},
            extra={"kind": kind, **extra},
        )

    def kpi(self, mode: str = "current") -> Tuple[Optional[PeriodKey], KPIResult]:
        """KPIs for the filtered records.

        - current: absolute totals over every filtered record
        - increment: the latest filtered week against its chronological predecessor
          (week filters ignored when looking it up); falls back to absolute when
          the latest week has no predecessor
        """
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        target = self.target_scope_yuan()

        def compute() -> Tuple[Optional[PeriodKey], KPIResult]:
            filtered = self.filtered_records()
            if mode == "current" or not filtered:
                return None, calculate(filtered, target, self.cost_rule)
            groups = group_by_period(filtered)
            latest = sorted_periods(groups)[-1]
            pool = group_by_period(apply_filters(self.records, self.filters, exclude=("weeks",)))
            prev = previous_period(latest, pool.keys())
            if prev is None:
                return latest, calculate(groups[latest], target, self.cost_rule)
            return latest, calculate_increment(groups[latest], pool[prev], target, self.cost_rule)

        return self._cached(self._key("kpi", mode, target), compute)

    def trend(self, mode: str = "current", limit: Optional[int] = None) -> List[Tuple[PeriodKey, KPIResult]]:
        target = self.target_scope_yuan()
        return self._cached(
            self._key("trend", mode, target, limit=limit),
            lambda: weekly_series(self.filtered_records(), mode, target, limit, self.cost_rule),
        )
