"""Metadata values cached per target, and the paths they are stored under.

Three registries describe the valid metadata names: boolean values, integer
values and string values.  A :class:`Metadata` instance holds the current
values for one target and only accepts registered names.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from gnmikit import latency

# Root node where metadata is cached.
ROOT = "meta"

# Per-target metadata names.
SYNC = "sync"
CONNECTED = "connected"
CONNECTED_ADDR = "connectedAddress"
ADD_COUNT = "targetLeavesAdded"
DEL_COUNT = "targetLeavesDeleted"
EMPTY_COUNT = "targetLeavesEmpty"
LEAF_COUNT = "targetLeaves"
UPDATE_COUNT = "targetLeavesUpdated"
STALE_COUNT = "targetLeavesStale"
FUTURE_COUNT = "targetLeavesFuture"
SUPPRESSED_COUNT = "targetLeavesSuppressed"
SIZE = "targetSize"
LATEST_TIMESTAMP = "latestTimestamp"
CONNECT_ERROR = "connectError"
SERVER_NAME = "serverName"


class ResetAction(Enum):
    """What happens to a string value when its entry is reset."""

    DEFAULT_VALUE = 0
    DELETE = 1
    KEEP = 2


@dataclass
class IntValue:
    """Path and options of an integer metadata value."""

    path: list[str] = field(default_factory=list)
    init_zero: bool = False


@dataclass
class StrValue:
    """Options of a string metadata value."""

    reset_action: ResetAction = ResetAction.DEFAULT_VALUE


class InvalidValueError(ValueError):
    """Raised when an operation names a metadata value that is not registered."""

    def __init__(self, message: str = "invalid metadata value") -> None:
        super().__init__(message)


class UnsetValueError(LookupError):
    """Raised when reading a metadata value that has not been set."""

    def __init__(self, message: str = "unset value") -> None:
        super().__init__(message)


TARGET_BOOL_VALUES: dict[str, bool] = {
    SYNC: True,
    CONNECTED: True,
}

TARGET_INT_VALUES: dict[str, IntValue] = {
    name: IntValue([ROOT, name], True)
    for name in (
        ADD_COUNT,
        DEL_COUNT,
        EMPTY_COUNT,
        LEAF_COUNT,
        UPDATE_COUNT,
        STALE_COUNT,
        FUTURE_COUNT,
        SUPPRESSED_COUNT,
        SIZE,
        LATEST_TIMESTAMP,
    )
}

TARGET_STR_VALUES: dict[str, StrValue] = {
    CONNECTED_ADDR: StrValue(ResetAction.DEFAULT_VALUE),
    CONNECT_ERROR: StrValue(ResetAction.DELETE),
}


def register_int_value(name: str, val: IntValue) -> None:
    """Register an integer metadata value."""
    TARGET_INT_VALUES[name] = val


def unregister_int_value(name: str) -> None:
    """Unregister an integer metadata value."""
    TARGET_INT_VALUES.pop(name, None)


def register_str_value(name: str, val: StrValue) -> None:
    """Register a string metadata value."""
    TARGET_STR_VALUES[name] = val


def unregister_str_value(name: str) -> None:
    """Unregister a string metadata value."""
    TARGET_STR_VALUES.pop(name, None)


def path(value: str) -> list[str] | None:
    """Return the full metadata path of a registered value, or None."""
    if TARGET_BOOL_VALUES.get(value):
        return [ROOT, value]
    if value in TARGET_STR_VALUES:
        return [ROOT, value]
    int_val = TARGET_INT_VALUES.get(value)
    if int_val is not None:
        return list(int_val.path)
    return None


def _check_int(value: str) -> None:
    if value not in TARGET_INT_VALUES:
        raise InvalidValueError()


def _check_bool(value: str) -> None:
    if not TARGET_BOOL_VALUES.get(value):
        raise InvalidValueError()


def _check_str(value: str) -> None:
    if value not in TARGET_STR_VALUES:
        raise InvalidValueError()


class Metadata:
    """Thread-safe container of all metadata of one target."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ints: dict[str, int] = {}
        self._bools: dict[str, bool] = {}
        self._strs: dict[str, str] = {}
        self.clear()

    def reset_entry(self, entry: str) -> None:
        """Reset ``entry`` according to its registration.

        Booleans become False; integers become 0 or are removed; strings
        become empty, are removed or are kept.  Raises InvalidValueError for
        an unregistered entry.
        """
        if TARGET_BOOL_VALUES.get(entry):
            self.set_bool(entry, False)
            return
        int_val = TARGET_INT_VALUES.get(entry)
        if int_val is not None:
            if int_val.init_zero:
                self.set_int(entry, 0)
            else:
                with self._lock:
                    self._ints.pop(entry, None)
            return
        str_val = TARGET_STR_VALUES.get(entry)
        if str_val is not None:
            if str_val.reset_action is ResetAction.DEFAULT_VALUE:
                self.set_str(entry, "")
            elif str_val.reset_action is ResetAction.DELETE:
                with self._lock:
                    self._strs.pop(entry, None)
            return
        raise InvalidValueError(f"unsupported entry {entry!r}")

    def clear(self) -> None:
        """Reset every registered entry."""
        for registry in (TARGET_BOOL_VALUES, TARGET_INT_VALUES, TARGET_STR_VALUES):
            for name in list(registry):
                self.reset_entry(name)

    def add_int(self, value: str, i: int) -> None:
        """Increment the integer ``value`` by ``i``."""
        _check_int(value)
        with self._lock:
            self._ints[value] = self._ints.get(value, 0) + i

    def set_int(self, value: str, v: int) -> None:
        """Set the integer ``value`` to ``v``."""
        _check_int(value)
        with self._lock:
            self._ints[value] = v

    def get_int(self, value: str) -> int:
        """Return the integer ``value``."""
        _check_int(value)
        with self._lock:
            try:
                return self._ints[value]
            except KeyError:
                raise UnsetValueError() from None

    def set_bool(self, value: str, v: bool) -> None:
        """Set the boolean ``value`` to ``v``."""
        _check_bool(value)
        with self._lock:
            self._bools[value] = v

    def get_bool(self, value: str) -> bool:
        """Return the boolean ``value``."""
        _check_bool(value)
        with self._lock:
            try:
                return self._bools[value]
            except KeyError:
                raise UnsetValueError() from None

    def set_str(self, value: str, v: str) -> None:
        """Set the string ``value`` to ``v``."""
        _check_str(value)
        with self._lock:
            self._strs[value] = v

    def get_str(self, value: str) -> str:
        """Return the string ``value``."""
        _check_str(value)
        with self._lock:
            try:
                return self._strs[value]
            except KeyError:
                raise UnsetValueError() from None


def latency_path(window: int, typ: latency.StatType) -> list[str]:
    """Return the metadata path of latency statistic ``typ`` for ``window``."""
    return latency.path(window, typ, [ROOT])


def register_latency_metadata(window_sizes: Iterable[int]) -> None:
    """Register latency statistics metadata for each window size.

    Call this before creating any Metadata instance.
    """
    for size in window_sizes:
        for typ in (latency.StatType.AVG, latency.StatType.MAX, latency.StatType.MIN):
            register_int_value(
                latency.metadata_name(size, typ),
                IntValue(path=latency_path(size, typ)),
            )


def register_server_name_metadata() -> None:
    """Register the server name metadata; it is kept as is on reset."""
    register_str_value(SERVER_NAME, StrValue(ResetAction.KEEP))


def unregister_server_name_metadata() -> None:
    """Unregister the server name metadata."""
    unregister_str_value(SERVER_NAME)