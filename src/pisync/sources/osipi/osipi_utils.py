"""Small parsing and formatting helpers shared by the OSI PI source."""

import json
import keyword
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional, Union

from pisync.sources.osipi.osipi_errors import InvalidInterval

# Interval unit -> duration in microseconds. "y" is an average Gregorian year.
INTERVAL_UNITS = {
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
    "d": 86_400_000_000,
    "y": 31_556_952_000_000,
}

_INTERVAL_RE = re.compile(r"^\s*(?P<magnitude>[0-9]*\.?[0-9]+)\s*(?P<unit>[a-zA-Z]+)\s*$")

_ABSOLUTE_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:[.,](?P<fraction>\d+))?)?)?"
    r"\s*(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)

_PI_TIME_KEYWORDS = {"t", "y", "today", "yesterday", "now"}

# Non ISO layouts the PI Web API documents as accepted time strings.
_LENIENT_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y",
    "%d-%b-%Y %H:%M:%S",
    "%d-%b-%y %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)


@dataclass(frozen=True)
class Interval:
    """A sampling interval such as ``1h`` or ``500ms``."""

    magnitude: Union[int, float]
    unit: str
    duration: timedelta

    def __str__(self) -> str:
        return f"{self.magnitude}{self.unit}"


def parse_interval(interval: str) -> Interval:
    """Parse ``<magnitude><unit>`` into an :class:`Interval`.

    Raises:
        InvalidInterval: unknown unit, non-numeric or non-positive magnitude,
            or a duration that is not a whole number of microseconds.
    """
    if isinstance(interval, Interval):
        return interval
    m = _INTERVAL_RE.match(str(interval or ""))
    if not m:
        raise InvalidInterval(interval, "expected <magnitude><unit>")

    unit = m.group("unit")
    if unit not in INTERVAL_UNITS:
        raise InvalidInterval(
            interval, f"unknown unit {unit!r}, expected one of {', '.join(INTERVAL_UNITS)}"
        )

    exact = Decimal(m.group("magnitude"))
    if exact <= 0:
        raise InvalidInterval(interval, "duration must be positive")
    scaled = exact * INTERVAL_UNITS[unit]
    if scaled != scaled.to_integral_value():
        raise InvalidInterval(interval, "finer than 1 microsecond")
    micros = int(scaled)

    magnitude: Union[int, float] = int(exact) if exact == exact.to_integral_value() else float(exact)
    return Interval(magnitude=magnitude, unit=unit, duration=timedelta(microseconds=micros))


def is_relative_time(value: Any) -> bool:
    """True for PI time expressions that are relative to "now" (``*``, ``-1d``, ``t``...)."""
    if value is None:
        return True
    if isinstance(value, datetime):
        return False
    v = str(value).strip()
    if not v or "*" in v:
        return True
    if v[0] in "+-":
        return True
    return v.lower() in _PI_TIME_KEYWORDS


def parse_absolute_time(value: Any) -> Optional[datetime]:
    """Parse an absolute ISO-8601-like time string.

    Returns None when the value is not an absolute time. Naive input stays naive.
    """
    if isinstance(value, datetime):
        return value
    if value is None:
        return None
    m = _ABSOLUTE_RE.match(str(value).strip())
    if not m:
        return None

    try:
        dt = datetime.strptime(m.group("date"), "%Y-%m-%d")
        fraction = (m.group("fraction") or "")[:6].ljust(6, "0")
        dt = dt.replace(
            hour=int(m.group("hour") or 0),
            minute=int(m.group("minute") or 0),
            second=int(m.group("second") or 0),
            microsecond=int(fraction),
        )
    except ValueError:
        return None

    tz = m.group("tz")
    if tz:
        dt = dt.replace(tzinfo=_parse_offset(tz))
    return dt


def _parse_offset(tz: str) -> timezone:
    if tz == "Z":
        return timezone.utc
    sign = -1 if tz[0] == "-" else 1
    digits = tz[1:].replace(":", "")
    return timezone(sign * timedelta(hours=int(digits[:2]), minutes=int(digits[2:])))


def parse_ts_lenient(value: str) -> Optional[datetime]:
    """Best-effort parse for timestamps outside the two documented wire formats.

    Accepts any ISO-8601/RFC-3339 variant (space separator, any fraction length,
    offsets) plus a handful of US and day-month layouts. Naive results are
    taken as UTC since the server always answers in UTC.
    """
    if not isinstance(value, str):
        return None
    v = value.strip()
    dt = parse_absolute_time(v)
    if dt is None:
        for fmt in _LENIENT_FORMATS:
            try:
                dt = datetime.strptime(v, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_pi_time(dt: datetime) -> str:
    """Format a datetime the way the PI Web API expects it in a query string."""
    out = dt.strftime("%Y-%m-%dT%H:%M:%S")
    if dt.microsecond:
        out += "." + f"{dt.microsecond:06d}".rstrip("0")
    if dt.tzinfo is not None:
        offset = dt.strftime("%z")
        out += "Z" if offset in ("+0000", "-0000") else f"{offset[:3]}:{offset[3:]}"
    return out


def make_valid_name(name: Any) -> str:
    """Turn an attribute display name into a valid Python identifier."""
    s = re.sub(r"\W", "_", str(name or "").strip())
    if not s:
        return "x"
    if not s[0].isalpha():
        s = "x" + s
    if keyword.iskeyword(s):
        s = "x" + s[0].upper() + s[1:]
    return s


def unique_names(names: List[str]) -> List[str]:
    """Suffix repeated names with _1, _2, ... keeping the first one as is."""
    seen: dict = {}
    out = []
    for n in names:
        if n not in seen:
            seen[n] = 0
            out.append(n)
            continue
        seen[n] += 1
        candidate = f"{n}_{seen[n]}"
        while candidate in seen:
            seen[n] += 1
            candidate = f"{n}_{seen[n]}"
        seen[candidate] = 0
        out.append(candidate)
    return out


def split_list_option(value: Any) -> List[str]:
    """Read a list option given as a JSON list or a comma/semicolon/newline separated string."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    s = str(value).strip()
    if s.startswith("["):
        try:
            return [str(v).strip() for v in json.loads(s) if str(v).strip()]
        except json.JSONDecodeError:
            pass
    return [p.strip() for p in re.split(r"[,;\n]", s) if p.strip()]


def as_bool(v: Any, default: bool = False) -> bool:
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    s = str(v).strip().lower()
    if s in ("true", "t", "1", "yes", "y"):
        return True
    if s in ("false", "f", "0", "no", "n"):
        return False
    return default


def as_int(v: Any, default: int) -> int:
    if v is None or str(v).strip() == "":
        return default
    try:
        return int(str(v).strip())
    except ValueError:
        return default


def is_number(v: Any) -> bool:
    """True for real numbers; booleans and structured values are not numbers."""
    return isinstance(v, (int, float)) and not isinstance(v, bool)
