"""
Deterministic cache keys for KPI results.

The key covers everything that changes a result: filter selections, computation
mode, resolved target scope and the data/target revision counters.
Selection lists are sorted and de-duplicated so equivalent filters share a key.
Sequences are treated as sets, so tuples whose order matters must be passed as mappings.
"""

from __future__ import annotations
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Optional
import hashlib
import json
import math


def _canon(x: Any) -> Any:
    if is_dataclass(x) and not isinstance(x, type):
        return _canon(asdict(x))
    if isinstance(x, dict):
        return {str(k): _canon(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set, frozenset)):
        items = [_canon(v) for v in x]
        try:
            return sorted(set(items), key=lambda v: (type(v).__name__, v))
        except TypeError:
            return items
    if isinstance(x, bool) or x is None or isinstance(x, (int, str)):
        return x
    if isinstance(x, float):
        if math.isnan(x):
            return "NaN"
        if math.isinf(x):
            return "Infinity" if x > 0 else "-Infinity"
        if x.is_integer():
            return int(x)
        return repr(x)
    return str(x)


def canonical_json(obj: Any) -> str:
    return json.dumps(_canon(obj), sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def fingerprint(
    filters: Any,
    mode: str,
    target_scope: Optional[float] = None,
    revision: Any = 0,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    """SHA-256 hex key of the canonical (filters, mode, target, revision, extra) payload."""
    payload = {
        "filters": filters,
        "mode": mode,
        "target": target_scope,
        "revision": revision,
        "extra": extra or {},
    }
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()
