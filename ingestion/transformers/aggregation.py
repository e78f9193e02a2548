"""
Shared helpers for turning parsed report rows into summaries and breakdowns.

Aggregation is a single pass: additive metrics are summed into running totals
(overall and per group) and rates are derived once at the end from those
totals, never averaged row by row.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Hashable, Iterable, Mapping, Optional, Sequence, TypeVar

from schemas.metrics import NOT_SET

S = TypeVar("S")


def group_value(value: Any) -> str:
    """Grouping-key value with the "(not set)" sentinel for empty/missing input"""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return NOT_SET
    text = str(value).strip()
    return text or NOT_SET


def safe_rate(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0.0 when the result is undefined"""
    if not denominator:
        return 0.0
    value = (numerator / denominator) * scale
    return value if math.isfinite(value) else 0.0


def to_int(value: Any) -> int:
    """Parse API integers, which may arrive as JSON strings (int64)"""
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return 0


def to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


class GroupAccumulator:
    """Running additive totals keyed by a grouping value"""

    def __init__(self, fields: Sequence[str]):
        self.fields = tuple(fields)
        self.groups: Dict[Hashable, Dict[str, float]] = {}

    def add(self, key: Hashable, values: Mapping[str, float]) -> None:
        totals = self.groups.get(key)
        if totals is None:
            totals = self.groups[key] = dict.fromkeys(self.fields, 0)
        for name in self.fields:
            totals[name] += values.get(name, 0)

    def items(self):
        return self.groups.items()

    def __len__(self) -> int:
        return len(self.groups)


def sum_fields(records: Iterable[Any], fields: Sequence[str]) -> Dict[str, float]:
    totals = dict.fromkeys(fields, 0)
    for record in records:
        for name in fields:
            totals[name] += getattr(record, name)
    return totals


@dataclass
class AggregateResult(Generic[S]):
    """
    Output of an aggregator.

    breakdowns maps a dimension name ("source", "medium", ...) to the
    per-group records of that dimension. Emission order carries no meaning.
    """
    summary: S
    breakdowns: Dict[str, Dict[Hashable, Any]] = field(default_factory=dict)
    row_count: int = 0
    dropped_rows: int = 0

    def breakdown(self, dimension: str = "source") -> Dict[Hashable, Any]:
        return self.breakdowns.get(dimension, {})

    def top(self, dimension: str, metric: str, limit: Optional[int] = 10):
        """Groups of one dimension sorted by a metric, largest first"""
        ranked = sorted(
            self.breakdown(dimension).values(),
            key=lambda record: getattr(record, metric),
            reverse=True
        )
        return ranked[:limit] if limit else ranked
