from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import threading

import structlog

from insurdash.errors import CsvIssue, NotFoundError, ValidationError
from insurdash.targets import csvio
from insurdash.targets.dimensions import OVERALL_BIZ_TYPE, baseline_targets, known_business_types
from insurdash.targets.metrics import GoalMetrics, build_display_rows

logger = structlog.get_logger(__name__)

INIT = "INIT"
TUNED = "TUNED"


@dataclass(frozen=True)
class GoalRow:
    biz_type: str
    annual_target_init: float
    annual_target_tuned: float


@dataclass(frozen=True)
class TargetVersion:
    id: str
    type: str  # INIT|TUNED
    created_at: str  # ISO-8601
    locked: bool
    rows: Tuple[GoalRow, ...]

    def value_of(self, row: GoalRow) -> float:
        return row.annual_target_init if self.type == INIT else row.annual_target_tuned

    def targets(self) -> List[Tuple[str, float]]:
        return [(r.biz_type, self.value_of(r)) for r in self.rows]


def _row_pairs(rows: Iterable) -> List[Tuple[str, float]]:
    out: List[Tuple[str, float]] = []
    for r in rows:
        if isinstance(r, tuple):
            out.append((str(r[0]), float(r[1])))
        else:
            out.append((r.biz_type, float(r.annual_target)))
    return out


class TargetVersionStore:
    """Named target-table versions with a single current pointer.

    Versions are never mutated once added; tuned imports append and switch.
    """

    def __init__(self, initial_rows: Optional[Iterable] = None, base_year: int = 2025):
        self.base_year = int(base_year)
        self._lock = threading.Lock()
        self._listeners: List[Callable[[TargetVersion], None]] = []
        self._baseline = _row_pairs(initial_rows if initial_rows is not None else baseline_targets())
        self._initial = self._build_initial()
        self._versions: List[TargetVersion] = [self._initial]
        self._current_id = self._initial.id
        self._history: List[Tuple[Tuple[TargetVersion, ...], str]] = []

    @staticmethod
    def from_csv(content: str, base_year: int = 2025, known: Optional[Sequence[str]] = None) -> "TargetVersionStore":
        parsed = csvio.parse_goal_csv(content, known if known is not None else known_business_types())
        return TargetVersionStore(parsed.rows, base_year=base_year)

    @property
    def initial_version_id(self) -> str:
        return f"{self.base_year}-年初目标"

    def _build_initial(self) -> TargetVersion:
        return TargetVersion(
            id=self.initial_version_id,
            type=INIT,
            created_at=datetime(self.base_year, 1, 1, tzinfo=timezone.utc).isoformat(),
            locked=True,
            rows=tuple(GoalRow(b, v, v) for b, v in self._baseline),
        )

    # --- listeners -------------------------------------------------------

    def subscribe(self, callback: Callable[[TargetVersion], None]) -> None:
        """Register a callback fired with the new current version after each pointer change."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        current = self.get_current_version()
        for cb in list(self._listeners):
            cb(current)

    # --- reads -----------------------------------------------------------

    def versions(self) -> List[TargetVersion]:
        with self._lock:
            return list(self._versions)

    @property
    def current_version_id(self) -> str:
        return self._current_id

    def get_initial_version(self) -> TargetVersion:
        return self._initial

    def get_current_version(self) -> TargetVersion:
        with self._lock:
            return self._find(self._current_id)

    def get_version(self, version_id: str) -> TargetVersion:
        with self._lock:
            return self._find(version_id)

    def _find(self, version_id: str) -> TargetVersion:
        for v in self._versions:
            if v.id == version_id:
                return v
        raise NotFoundError(f"未找到指定版本：{version_id}")

    def known_business_types(self) -> Tuple[str, ...]:
        names = list(known_business_types())
        for b, _ in self._baseline:
            if b not in names:
                names.append(b)
        return tuple(names)

    # --- writes ----------------------------------------------------------

    def _version_name(self, imported_at: datetime) -> str:
        base = f"{self.base_year}-微调目标-{imported_at.strftime('%Y%m%d')}"
        taken = {v.id for v in self._versions}
        candidate, counter = base, 2
        while candidate in taken:
            candidate = f"{base}_#{counter}"
            counter += 1
        return candidate

    def create_tuned_version(
        self,
        rows: Iterable,
        imported_at: Optional[datetime] = None,
        sync_overall: bool = False,
        require_complete: bool = False,
    ) -> str:
        """Append a tuned version built from parsed CSV rows and make it current.

        - rows keep their input order; initial values come from the baseline
        - require_complete rejects imports missing any baseline business type
        - sync_overall rewrites 车险整体 as the sum of the other rows
        Returns the new version id.
        """
        pairs = _row_pairs(rows)
        imported_at = imported_at or datetime.now(timezone.utc)
        if require_complete:
            present = {b for b, _ in pairs}
            missing = [b for b, _ in self._baseline if b not in present]
            if missing:
                raise ValidationError(
                    f"导入失败，缺少以下业务类型：{'、'.join(missing)}",
                    [CsvIssue(type="MISSING_BIZ_TYPE", message=f"缺少业务类型：{b}", biz_type=b) for b in missing],
                )
        if sync_overall:
            sub_sum = sum(v for b, v in pairs if b != OVERALL_BIZ_TYPE)
            pairs = [(b, sub_sum if b == OVERALL_BIZ_TYPE else v) for b, v in pairs]

        init_values: Dict[str, float] = dict(self._baseline)
        new_rows = tuple(GoalRow(b, init_values.get(b, 0.0), v) for b, v in pairs)
        with self._lock:
            version_id = self._version_name(imported_at)
            version = TargetVersion(
                id=version_id,
                type=TUNED,
                created_at=imported_at.isoformat(),
                locked=False,
                rows=new_rows,
            )
            self._history.append((tuple(self._versions), self._current_id))
            self._versions.append(version)
            self._current_id = version_id
        logger.info("targets.version_created", version_id=version_id, rows=len(new_rows))
        self._notify()
        return version_id

    def switch_version(self, version_id: str) -> TargetVersion:
        with self._lock:
            version = self._find(version_id)
            changed = self._current_id != version_id
            self._current_id = version_id
        logger.info("targets.version_switched", version_id=version_id)
        if changed:
            self._notify()
        return version

    def undo(self) -> bool:
        """Restore the state before the last tuned import; False when nothing to undo."""
        with self._lock:
            if not self._history:
                return False
            versions, current = self._history.pop()
            self._versions = list(versions)
            self._current_id = current
        logger.info("targets.undo", version_id=current)
        self._notify()
        return True

    def reset(self) -> None:
        with self._lock:
            self._versions = [self._initial]
            self._current_id = self._initial.id
            self._history.clear()
        logger.info("targets.reset")
        self._notify()

    # --- export ----------------------------------------------------------

    def export_version_csv(self, version_id: str) -> str:
        return csvio.serialize_goal_rows(self.get_version(version_id).targets())

    def export_current_version_csv(self) -> str:
        return csvio.serialize_goal_rows(self.get_current_version().targets())

    def display_rows(self, achieved: Optional[Mapping[str, float]] = None) -> List[GoalMetrics]:
        return build_display_rows(self.get_current_version().rows, achieved)
