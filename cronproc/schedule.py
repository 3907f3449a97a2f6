from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Iterable

from cronproc.errors import InvalidSchedule

# term := ("*" | N) ["-" N] ["/" N]
_TERM_RE = re.compile(r"^(?P<start>\*|[0-9]+)(?:-(?P<end>[0-9]+))?(?:/(?P<step>[0-9]+))?$")

DEFAULT_CRON = "* * * * *"

PRESETS: dict[str, str] = {
    "hourly": "0 * * * *",
    "daily": "0 0 * * *",
    "weekly": "0 0 * * 0",
    "monthly": "0 0 1 * *",
    "yearly": "0 0 1 1 *",
}


class Month(IntEnum):
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12


class Weekday(IntEnum):
    # same numbering as evaluate(): 0 is Sunday
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


class ScheduleField(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"
    DAY_OF_WEEK = "day_of_week"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _ALIASES.get(value.replace("_", "").lower())
        return None

    @property
    def bounds(self) -> tuple[int, int]:
        return _BOUNDS[self]

    def domain(self) -> range:
        low, high = _BOUNDS[self]
        return range(low, high + 1)


_BOUNDS: dict[ScheduleField, tuple[int, int]] = {
    ScheduleField.MINUTE: (0, 59),
    ScheduleField.HOUR: (0, 23),
    ScheduleField.DAY: (1, 31),
    ScheduleField.MONTH: (1, 12),
    ScheduleField.DAY_OF_WEEK: (0, 6),
}

_ALIASES: dict[str, ScheduleField] = {
    "minute": ScheduleField.MINUTE,
    "hour": ScheduleField.HOUR,
    "day": ScheduleField.DAY,
    "dayofmonth": ScheduleField.DAY,
    "month": ScheduleField.MONTH,
    "dayofweek": ScheduleField.DAY_OF_WEEK,
}

# cron column order
FIELD_ORDER: tuple[ScheduleField, ...] = (
    ScheduleField.MINUTE,
    ScheduleField.HOUR,
    ScheduleField.DAY,
    ScheduleField.MONTH,
    ScheduleField.DAY_OF_WEEK,
)


def _as_field(field: ScheduleField | str, raw: str) -> ScheduleField:
    try:
        return ScheduleField(field)
    except ValueError:
        raise InvalidSchedule(str(field), raw, "unknown schedule field") from None


def _expand_term(field: ScheduleField, raw: str, term: str) -> range:
    m = _TERM_RE.match(term)
    if not m:
        raise InvalidSchedule(field.value, raw, f"bad term '{term}'")

    low, high = field.bounds
    step = int(m["step"]) if m["step"] is not None else 1
    if step < 1:
        raise InvalidSchedule(field.value, raw, f"step must be positive in '{term}'")

    if m["start"] == "*":
        if m["end"] is not None:
            raise InvalidSchedule(field.value, raw, f"'*' cannot open a range in '{term}'")
        return range(low, high + 1, step)

    start = int(m["start"])
    if m["end"] is not None:
        end = int(m["end"])
    elif m["step"] is not None:
        # "a/s" walks from a up to the top of the domain
        end = high
    else:
        end = start

    if start < low or start > high:
        raise InvalidSchedule(field.value, raw, f"wrong beginning of the range: '{start}'")
    if end > high:
        raise InvalidSchedule(field.value, raw, f"wrong ending of the range: '{end}'")
    if end < start:
        raise InvalidSchedule(field.value, raw, f"reversed range in '{term}'")
    return range(start, end + 1, step)


def parse_field(field: ScheduleField | str, raw: str) -> frozenset[int]:
    """
    Expand one cron field into the set of values it allows.

    Terms are comma separated and unioned: ``*``, ``a``, ``a-b``, each optionally
    followed by ``/step``. A bare ``a/step`` runs to the field's maximum.
    """
    text = str(raw).strip()
    f = _as_field(field, text)
    if not text:
        raise InvalidSchedule(f.value, text, "empty value")

    values: set[int] = set()
    for term in text.split(","):
        values.update(_expand_term(f, text, term))
    return frozenset(values)


def canonical_field(field: ScheduleField | str, values: Iterable[int]) -> str:
    """Shortest-ish textual form of an allowed-value set; parses back to the same set."""
    f = _as_field(field, "")
    ordered = sorted(set(values))
    if ordered == list(f.domain()):
        return "*"

    parts: list[str] = []
    i = 0
    while i < len(ordered):
        j = i
        while j + 1 < len(ordered) and ordered[j + 1] == ordered[j] + 1:
            j += 1
        if j - i >= 2:
            parts.append(f"{ordered[i]}-{ordered[j]}")
        else:
            parts.extend(str(v) for v in ordered[i:j + 1])
        i = j + 1
    return ",".join(parts)


def split_cron(expr: str) -> tuple[str, str, str, str, str]:
    parts = str(expr).split()
    if len(parts) != 5:
        raise InvalidSchedule("cron", str(expr), f"expected 5 fields, got {len(parts)}")
    return parts[0], parts[1], parts[2], parts[3], parts[4]


@dataclass(frozen=True)
class ScheduleSpec:
    minute: frozenset[int]
    hour: frozenset[int]
    day: frozenset[int]
    month: frozenset[int]
    day_of_week: frozenset[int]

    def __post_init__(self) -> None:
        for f in FIELD_ORDER:
            values = getattr(self, f.value)
            if not values:
                raise InvalidSchedule(f.value, "", "no allowed values")
            low, high = f.bounds
            if min(values) < low or max(values) > high:
                raise InvalidSchedule(f.value, canonical_field(f, values), "value outside of the field domain")

    def canonical(self) -> str:
        return " ".join(canonical_field(f, getattr(self, f.value)) for f in FIELD_ORDER)

    def matches(self, ts: datetime) -> bool:
        return evaluate(self, ts)

    def __str__(self) -> str:
        return self.canonical()


def parse_cron(expr: str) -> ScheduleSpec:
    raw = split_cron(expr)
    return ScheduleSpec(**{f.value: parse_field(f, value) for f, value in zip(FIELD_ORDER, raw)})


def day_of_week(ts: datetime) -> int:
    # 0 = Sunday ... 6 = Saturday
    return ts.isoweekday() % 7


def evaluate(spec: ScheduleSpec, ts: datetime) -> bool:
    """
    True when every field allows the matching component of ``ts``.

    Day of month and day of week are ANDed like the other fields, unlike the
    OR rule of classic cron daemons: "0 0 13 * 5" fires only on Friday the 13th.
    """
    return (
        ts.minute in spec.minute
        and ts.hour in spec.hour
        and ts.day in spec.day
        and ts.month in spec.month
        and day_of_week(ts) in spec.day_of_week
    )


