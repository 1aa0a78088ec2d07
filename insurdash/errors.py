from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CsvIssue:
    type: str  # MISSING_COLUMN|EMPTY_VALUE|DUPLICATE_BIZ_TYPE|NON_NUMERIC|NEGATIVE_VALUE|UNKNOWN_BIZ_TYPE|MISSING_BIZ_TYPE
    message: str
    row_index: Optional[int] = None  # 1-based line number, header is line 1
    biz_type: Optional[str] = None
    raw_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "row_index": self.row_index,
            "biz_type": self.biz_type,
            "raw_value": self.raw_value,
        }


class ValidationError(ValueError):
    """Input rejected; ``issues`` lists every offending row."""

    def __init__(self, message: str, issues: List[CsvIssue] | None = None):
        super().__init__(message)
        self.issues: List[CsvIssue] = list(issues or [])


class NotFoundError(LookupError):
    pass
