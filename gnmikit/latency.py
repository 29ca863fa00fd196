"""Latency statistics (average, maximum, minimum) over sliding time windows.

Durations and timestamps are integer nanoseconds.  Timestamps are
nanoseconds since the Unix epoch.
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from fractions import Fraction
from typing import Callable, Iterable, Protocol

# Container of all latency metadata about a target.
ELEM_LATENCY = "latency"
# Contains latency metadata (avg, max, min) of a particular window size.
ELEM_WINDOW = "window"
ELEM_AVG = "avg"
ELEM_MAX = "max"
ELEM_MIN = "min"
_META_NAME = "LatencyWindow"

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_MAX_DURATION = (1 << 63) - 1


class StatType(IntEnum):
    """Kind of latency statistic kept for a time window."""

    AVG = 0
    MAX = 1
    MIN = 2

    def __str__(self) -> str:
        return {StatType.AVG: ELEM_AVG, StatType.MAX: ELEM_MAX, StatType.MIN: ELEM_MIN}[
            self
        ]


class MetadataSink(Protocol):
    """Receives the exported latency statistics."""

    def set_int(self, name: str, value: int) -> None:
        """Store ``value`` under the metadata name ``name``."""


def _frac(value: int, prec: int) -> str:
    whole, frac = divmod(value, 10**prec)
    digits = f"{frac:0{prec}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(nanos: int) -> str:
    """Format a duration the conventional way, e.g. ``1h2m3.5s`` or ``1.5ms``."""
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    u = abs(nanos)
    if u < SECOND:
        if u < MICROSECOND:
            body = f"{u}ns"
        elif u < MILLISECOND:
            body = _frac(u, 3) + "µs"
        else:
            body = _frac(u, 6) + "ms"
        return sign + body
    seconds = _frac(u % MINUTE, 9) + "s"
    minutes, rem = divmod(u // SECOND, 60)
    if minutes == 0:
        return sign + seconds
    hours, minutes = divmod(minutes, 60)
    if hours == 0:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{hours}h{minutes}m{seconds}"


_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,
    "μs": MICROSECOND,
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}
_DURATION_PART = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")


def parse_duration(text: str) -> int:
    """Parse a duration such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``.

    Returns nanoseconds; raises ValueError on malformed input.
    """
    quoted = '"' + text + '"'
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return 0
    if not s:
        raise ValueError(f"time: invalid duration {quoted}")
    total = Fraction(0)
    pos = 0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        whole, frac, unit = m.groups()
        if not whole and not frac:
            raise ValueError(f"time: invalid duration {quoted}")
        if not unit:
            raise ValueError(f"time: missing unit in duration {quoted}")
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration {quoted}')
        number = Fraction(int(whole or "0"))
        if frac:
            number += Fraction(int(frac), 10 ** len(frac))
        total += number * _UNITS[unit]
        pos = m.end()
    limit = _MAX_DURATION + 1 if negative else _MAX_DURATION
    if total > limit:
        raise ValueError(f"time: invalid duration {quoted}")
    result = int(total)
    return -result if negative else result


def compact_duration_string(nanos: int) -> str:
    """Format a window size, dropping redundant ``0m0s`` and ``0s`` suffixes."""
    s = format_duration(nanos)
    n = len(s)
    if n >= 6 and s.endswith("h0m0s"):
        return s[: n - 4]
    if n >= 4 and s.endswith("m0s"):
        return s[: n - 2]
    return s


def path(window: int, typ: StatType, prefix: Iterable[str] | None = None) -> list[str]:
    """Return the metadata path for statistic ``typ`` of window ``window``."""
    return [
        *(prefix or []),
        ELEM_LATENCY,
        ELEM_WINDOW,
        compact_duration_string(window),
        str(typ),
    ]


def metadata_name(window: int, typ: StatType) -> str:
    """Return the metadata name for statistic ``typ`` of window ``window``."""
    return f"{typ}{_META_NAME}{compact_duration_string(window)}"


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


@dataclass
class _Slot:
    total: int
    max: int
    min: int
    count: int
    start: int
    end: int


class _Window:
    def __init__(self, size: int, scale: int) -> None:
        self.size = size
        self.scale = scale
        self.total = 0
        self.count = 0
        self.slots: list[_Slot] = []
        self.covered = False
        self.stats: dict[str, Callable[[str, MetadataSink], None]] = {
            metadata_name(size, StatType.AVG): self._set_avg,
            metadata_name(size, StatType.MAX): self._set_max,
            metadata_name(size, StatType.MIN): self._set_min,
        }

    def add(self, slot: _Slot | None) -> None:
        if slot is None or slot.count == 0:
            return
        self.total += slot.total
        self.count += slot.count
        self.slots.append(slot)

    def _set_avg(self, name: str, m: MetadataSink) -> None:
        if self.count == 0:
            return
        avg = _trunc_div(self.total, self.count)
        if avg != 0:
            m.set_int(name, avg * self.scale)

    def _set_max(self, name: str, m: MetadataSink) -> None:
        longest = max((s.max for s in self.slots), default=0)
        longest = max(longest, 0)
        if longest != 0:
            m.set_int(name, longest)

    def _set_min(self, name: str, m: MetadataSink) -> None:
        if not self.slots:
            return
        shortest = min(s.min for s in self.slots)
        if shortest != 0:
            m.set_int(name, shortest)

    def slide(self, ts: int) -> None:
        cutoff = ts - self.size
        expired = [s for s in self.slots if s.end <= cutoff]
        for s in expired:
            self.count -= s.count
            self.total -= s.total
        self.slots = self.slots[len(expired):]

    def is_covered(self, ts: int) -> bool:
        if self.covered:
            return True
        if not self.slots:
            return False
        if ts - self.slots[0].start >= self.size:
            self.covered = True
            return True
        return False

    def update_meta(self, m: MetadataSink, ts: int, ignore_coverage: bool) -> None:
        if not ignore_coverage and not self.is_covered(ts):
            return
        self.slide(ts)
        for name, setter in self.stats.items():
            setter(name, m)


class Latency:
    """Accumulates latencies and exports statistics for a set of windows.

    ``avg_precision`` coarsens the accumulated totals used for averages to
    avoid overflow; exported values are always nanoseconds.
    ``compute_func(ts, now)`` overrides how a latency is derived from a
    timestamp; ``clock`` returns the current time in nanoseconds.
    """

    def __init__(
        self,
        window_sizes: Iterable[int] = (),
        avg_precision: int | None = None,
        compute_func: Callable[[int, int], int] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        precision = avg_precision if avg_precision else NANOSECOND
        self._scale = precision
        self._compute = compute_func or (lambda ts, now: now - ts)
        self._clock = clock or time.time_ns
        self._windows = [_Window(size, precision) for size in window_sizes]
        self._lock = threading.Lock()
        self._start: int | None = None
        self._total = 0
        self._count = 0
        self._min = 0
        self._max = 0

    def compute(self, ts: int) -> None:
        """Record the latency of an update carrying timestamp ``ts``."""
        with self._lock:
            now = self._clock()
            lat = self._compute(ts, now)
            self._total += _trunc_div(lat, self._scale)
            self._count += 1
            if lat > self._max:
                self._max = lat
            if lat < self._min or self._min == 0:
                self._min = lat
            if self._start is None:
                self._start = now

    def update_reset(self, m: MetadataSink) -> None:
        """Fold the latencies of the last interval into the windows and export.

        Windows that have not yet seen a full window of data export nothing.
        """
        self._update(m, False)

    def update_last(self, m: MetadataSink) -> None:
        """Like :meth:`update_reset`, but export even from partly filled windows."""
        self._update(m, True)

    def _update(self, m: MetadataSink, ignore_coverage: bool) -> None:
        with self._lock:
            ts = self._clock()
            if self._count:
                slot = _Slot(
                    total=self._total,
                    max=self._max,
                    min=self._min,
                    count=self._count,
                    start=self._start if self._start is not None else 0,
                    end=ts,
                )
                for window in self._windows:
                    window.add(slot)
                self._total = 0
                self._count = 0
                self._min = 0
                self._max = 0
            for window in self._windows:
                window.update_meta(m, ts, ignore_coverage)
            self._start = ts


def parse_windows(tds: Iterable[str], meta_update_period: int) -> list[int]:
    """Parse window sizes and check each is a multiple of the update period."""
    durations = []
    for td in tds:
        try:
            dur = parse_duration(td)
        except ValueError as exc:
            raise ValueError(f"parsing {td}: {exc}") from exc
        if dur % meta_update_period != 0:
            raise ValueError(
                f"latency stats window {td} is not a multiple of metadata "
                f"update period {format_duration(meta_update_period)}"
            )
        durations.append(dur)
    return durations