"""
Dashboard analysis over performance test records.

Pure, synchronous functions that work on an already-fetched record
collection: the dashboard filter/sort, summary statistics, per-day trend
buckets and side-by-side comparison.  Nothing here touches the database or
mutates its inputs, so every function is safe to call from concurrent
requests.

Records are read by attribute, so ORM ``PerformanceTest`` rows and any
object exposing the same attributes are accepted.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .exceptions import (
    InsufficientSelectionError,
    InvalidMetricError,
    NoMatchError,
    ValidationError,
)
from .models import TestStatus, ensure_utc

SORT_KEYS = ("name", "created_at", "response_time_ms", "cpu_usage_percent", "memory_usage_mb")
SORT_DIRECTIONS = ("asc", "desc")
TREND_METRICS = ("response_time_ms", "cpu_usage_percent", "memory_usage_mb")


# =====================================================================
# Query / filter engine
# =====================================================================


@dataclass(frozen=True)
class FilterSpec:
    """
    Dashboard filter criteria.  ``None`` or an empty string disables a predicate.

    Attributes:
        status: Exact status match.
        device: Case-insensitive substring of the record's device.
        search: Case-insensitive substring of the record's name or notes.
    """

    status: TestStatus | None = None
    device: str | None = None
    search: str | None = None

    def matches(self, record: Any) -> bool:
        if self.status is not None and _status_value(record.status) != self.status.value:
            return False
        if self.device:
            if self.device.casefold() not in (record.device or "").casefold():
                return False
        if self.search:
            needle = self.search.casefold()
            in_name = needle in (record.name or "").casefold()
            in_notes = needle in (record.notes or "").casefold()
            if not (in_name or in_notes):
                return False
        return True


@dataclass(frozen=True)
class SortSpec:
    """Sort key and direction; the defaults list newest records first."""

    key: str = "created_at"
    direction: str = "desc"

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise ValidationError(f"Invalid sort key. Must be one of: {list(SORT_KEYS)}")
        if self.direction not in SORT_DIRECTIONS:
            raise ValidationError(
                f"Invalid sort order. Must be one of: {list(SORT_DIRECTIONS)}"
            )

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


def _sort_value(record: Any, key: str) -> Any:
    value = getattr(record, key)
    if key == "created_at":
        # Compare instants, not wall-clock strings.
        return ensure_utc(value)
    if key == "name":
        return (value or "").casefold()
    return value


def filter_and_sort(
    records: Iterable[Any],
    filter_spec: FilterSpec | None = None,
    sort_spec: SortSpec | None = None,
) -> list[Any]:
    """
    Return the records matching every filter predicate, in sort order.

    The sort is stable in both directions: records with equal keys keep
    their input order.  An empty list is returned when nothing matches.
    """
    filter_spec = filter_spec or FilterSpec()
    sort_spec = sort_spec or SortSpec()

    visible = [record for record in records if filter_spec.matches(record)]
    return sorted(
        visible,
        key=lambda record: _sort_value(record, sort_spec.key),
        reverse=sort_spec.descending,
    )


# =====================================================================
# Aggregator
# =====================================================================


@dataclass(frozen=True)
class SummaryStats:
    """
    Headline figures for a record collection.

    Every mean is ``0.0`` for an empty collection.
    """

    total_count: int
    mean_response_time_ms: float
    mean_cpu_usage_percent: float
    mean_memory_usage_mb: float
    status_counts: dict[str, int] = field(default_factory=dict)

    @property
    def stable_count(self) -> int:
        return self.status_counts.get(TestStatus.STABLE.value, 0)

    @property
    def lag_count(self) -> int:
        return self.status_counts.get(TestStatus.LAG.value, 0)

    @property
    def crash_count(self) -> int:
        return self.status_counts.get(TestStatus.CRASH.value, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "mean_response_time_ms": self.mean_response_time_ms,
            "mean_cpu_usage_percent": self.mean_cpu_usage_percent,
            "mean_memory_usage_mb": self.mean_memory_usage_mb,
            "stable_count": self.stable_count,
            "lag_count": self.lag_count,
            "crash_count": self.crash_count,
        }


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, TestStatus) else status


def aggregate(records: Iterable[Any]) -> SummaryStats:
    """Compute counts per status and arithmetic means over ``records``."""
    records = list(records)
    status_counts = {status.value: 0 for status in TestStatus}
    for record in records:
        value = _status_value(record.status)
        status_counts[value] = status_counts.get(value, 0) + 1

    return SummaryStats(
        total_count=len(records),
        mean_response_time_ms=_mean([r.response_time_ms for r in records]),
        mean_cpu_usage_percent=_mean([r.cpu_usage_percent for r in records]),
        mean_memory_usage_mb=_mean([r.memory_usage_mb for r in records]),
        status_counts=status_counts,
    )


@dataclass(frozen=True)
class TrendBucket:
    """Aggregates of one metric over the records of one UTC calendar date."""

    date: date
    mean: float
    min: float
    max: float
    record_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "mean": self.mean,
            "min": self.min,
            "max": self.max,
            "record_count": self.record_count,
        }


def trend(
    records: Iterable[Any],
    window_days: int,
    metric: str,
    now: datetime | None = None,
) -> list[TrendBucket]:
    """
    Bucket ``metric`` by UTC calendar date over the trailing ``window_days``.

    Only records created within ``[now - window_days, now]`` are counted.
    Dates without records are omitted; buckets are ordered by date.  A
    window reaching past ``datetime.min`` starts there instead.

    Raises:
        InvalidMetricError: If ``metric`` is not one of ``TREND_METRICS``.
        ValidationError: If ``window_days`` is not a positive integer.
    """
    if metric not in TREND_METRICS:
        raise InvalidMetricError(f"Invalid metric. Must be one of: {list(TREND_METRICS)}")
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 1:
        raise ValidationError("days must be a positive integer")

    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    try:
        window_start = now - timedelta(days=window_days)
    except OverflowError:
        window_start = datetime.min.replace(tzinfo=timezone.utc)

    by_date: dict[date, list[float]] = {}
    for record in records:
        created_at = ensure_utc(record.created_at)
        if window_start <= created_at <= now:
            by_date.setdefault(created_at.date(), []).append(getattr(record, metric))

    return [
        TrendBucket(
            date=day,
            mean=_mean(values),
            min=min(values),
            max=max(values),
            record_count=len(values),
        )
        for day, values in sorted(by_date.items())
    ]


# =====================================================================
# Comparator
# =====================================================================


def compare(records: Iterable[Any], ids: Sequence[int]) -> list[Any]:
    """
    Return the records named by ``ids`` in selection order.

    Duplicate ids count once.  When only some ids resolve, the resolved
    subset is returned rather than failing.

    Raises:
        InsufficientSelectionError: Fewer than two distinct ids were given.
        NoMatchError: None of the ids resolve.
    """
    selection = list(dict.fromkeys(ids))
    if len(selection) < 2:
        raise InsufficientSelectionError("Please provide at least 2 test IDs to compare")

    by_id = {record.id: record for record in records}
    matched = [by_id[test_id] for test_id in selection if test_id in by_id]
    if not matched:
        raise NoMatchError("No tests found with provided IDs")
    return matched
