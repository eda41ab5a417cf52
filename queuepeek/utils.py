import re
from datetime import datetime, timezone
from typing import Any, Iterable, NamedTuple, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from .errors import ConfigError, DecodeError

UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}
DURATION_UNITS = (("d", 86400), ("h", 3600), ("m", 60), ("s", 1))

_RELATIVE_RE = re.compile(r"^(\d+)([smhdw]?)$")
_IDENTITY_RE = re.compile(r"^([^:]+):([^:]+)")
# resque writes failed_at as "2013/01/31 14:02:11 UTC"
_SLASH_DATE_RE = re.compile(r"^(\d{4})/(\d{2})/(\d{2})")
_OFFSET_RE = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)\s*([+-]\d{2}):?(\d{2})$")

_datetime_adapter = TypeAdapter(datetime)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_seconds(value: str) -> int:
    """Parse a relative time like ``90m`` or ``2d`` into seconds (no unit = seconds)."""
    m = _RELATIVE_RE.match((value or "").strip())
    if not m:
        raise ConfigError(f"Invalid relative time: {value!r} (expected e.g. 30s, 90m, 2d, 1w)")
    amount, unit = m.groups()
    return int(amount) * UNIT_SECONDS[unit or "s"]


def to_duration_string(seconds: int) -> str:
    """
    Compact human duration: 93784 -> "1d 2h 3m 4s".
    Zero units are skipped, so 0 gives "" and 3600 gives "1h".
    """
    seconds = int(seconds)
    sign = "-" if seconds < 0 else ""
    remaining = abs(seconds)
    parts = []
    for letter, size in DURATION_UNITS:
        value, remaining = divmod(remaining, size)
        if value:
            parts.append(f"{value}{letter}")
    if not parts:
        return ""
    return sign + " ".join(parts)


def parse_timestamp(raw: Any) -> datetime:
    """Integer epoch (sidekiq) or ISO-like string (resque) -> aware UTC datetime."""
    if isinstance(raw, bool):
        raise DecodeError(f"Unsupported timestamp: {raw!r}")
    if isinstance(raw, int):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    if not isinstance(raw, str):
        raise DecodeError(f"Unsupported timestamp: {raw!r}")

    text = _SLASH_DATE_RE.sub(r"\1-\2-\3", raw.strip())
    if text.endswith(" UTC"):
        text = text[: -len(" UTC")] + "+00:00"
    else:
        text = _OFFSET_RE.sub(r"\1\2:\3", text)
    try:
        parsed = _datetime_adapter.validate_python(text)
    except ValidationError as e:
        raise DecodeError(f"Invalid timestamp {raw!r}: {e.errors()[0]['msg']}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def elapsed_seconds(raw: Any, now: Optional[datetime] = None) -> int:
    """now - timestamp in whole seconds; negative when the timestamp is in the future."""
    now = now or utcnow()
    return int((now - parse_timestamp(raw)).total_seconds())


def optional_elapsed(raw: Any, now: Optional[datetime] = None) -> Optional[int]:
    if raw is None:
        return None
    return elapsed_seconds(raw, now)


def worker_identity(name: str) -> Tuple[str, str]:
    """Split ``host:pid[:extra...]`` into (host, pid)."""
    m = _IDENTITY_RE.match(name) if isinstance(name, str) else None
    if not m:
        raise DecodeError(f"Worker name does not look like host:pid: {name!r}")
    return m.group(1), m.group(2)


class Unique(NamedTuple):
    match: str


class Ambiguous(NamedTuple):
    candidates: Tuple[str, ...]


class NotFound(NamedTuple):
    word: str


def match_prefix(word: str, choices: Iterable[str]):
    """
    Resolve ``word`` against ``choices`` by unique prefix.
    An exact hit always wins, so "stat" vs "stats" style overlaps stay usable.
    """
    choices = tuple(choices)
    if word in choices:
        return Unique(word)
    hits = tuple(c for c in choices if word and c.startswith(word))
    if len(hits) == 1:
        return Unique(hits[0])
    if hits:
        return Ambiguous(hits)
    return NotFound(word)


def resolve_prefix(word: str, choices: Iterable[str], what: str) -> str:
    """match_prefix, turning anything but a unique hit into a ConfigError."""
    choices = tuple(choices)
    result = match_prefix(word, choices)
    if isinstance(result, Unique):
        return result.match
    if isinstance(result, Ambiguous):
        raise ConfigError(f"Ambiguous {what} {word!r}: could be {', '.join(result.candidates)}")
    raise ConfigError(f"Unknown {what} {word!r}: expected one of {', '.join(choices)}")
