import re
from typing import Iterable, List, Optional, TypeVar

from .errors import ConfigError

T = TypeVar("T")


def _compile(pattern: str, option: str):
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid {option} pattern {pattern!r}: {e}") from e


def older_than(records: Iterable[T], threshold: int) -> List[T]:
    """Keep records whose primary elapsed time is >= threshold seconds."""
    return [r for r in records if getattr(r, "elapsed", None) is not None and r.elapsed >= threshold]


def retried_before(records: Iterable[T], threshold: int) -> List[T]:
    """Keep failed jobs that were retried at least threshold seconds ago."""
    return [
        r for r in records
        if getattr(r, "retried_elapsed", None) is not None and r.retried_elapsed >= threshold
    ]


def matching(records: Iterable[T], field: str, pattern: str) -> List[T]:
    """Keep records whose ``field`` matches ``pattern`` anywhere; a missing field never matches."""
    regex = _compile(pattern, field)
    kept = []
    for r in records:
        value = getattr(r, field, None)
        if value is not None and regex.search(str(value)):
            kept.append(r)
    return kept


def apply_filters(
    records: Iterable[T],
    age: Optional[int] = None,
    retry_age: Optional[int] = None,
    class_pattern: Optional[str] = None,
    queue_pattern: Optional[str] = None,
) -> List[T]:
    """Age, then retry age, then class, then queue. All filters must pass."""
    records = list(records)
    if age is not None:
        records = older_than(records, age)
    if retry_age is not None:
        records = retried_before(records, retry_age)
    if class_pattern is not None:
        records = matching(records, "job_class", class_pattern)
    if queue_pattern is not None:
        records = matching(records, "queue", queue_pattern)
    return records
