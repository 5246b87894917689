"""
Schedule evaluation for automatic register open/close.

Pure functions of (config, operation, instant): no database access and no
clock reads, so the same inputs always give the same answer. The evaluator
may return True on every tick inside the matching window; the orchestrator's
operation-log check is what keeps execution at most once per day.
"""
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import FrozenSet, Iterable, List, Optional, Union

import pytz

from cash_automation.core.timezone_utils import localize, to_local

OPERATION_OPEN = "open"
OPERATION_CLOSE = "close"
OPERATIONS = (OPERATION_OPEN, OPERATION_CLOSE)

DEFAULT_WINDOW_MINUTES = 5


@dataclass(frozen=True)
class ScheduleSpec:
    """Validated, immutable view of a tenant's schedule configuration."""

    auto_open_enabled: bool
    auto_close_enabled: bool
    open_hour: int
    open_minute: int
    close_hour: int
    close_minute: int
    active_days: FrozenSet[int]
    timezone: str

    @classmethod
    def from_config(cls, config) -> "ScheduleSpec":
        """
        Build a ScheduleSpec from a CashScheduleConfig row (or any object with the
        same attributes). Raises ValueError on out-of-range times or an
        unknown timezone.
        """
        spec = cls(
            auto_open_enabled=bool(config.auto_open_enabled),
            auto_close_enabled=bool(config.auto_close_enabled),
            open_hour=_int_or(config.open_hour, 9),
            open_minute=_int_or(config.open_minute, 0),
            close_hour=_int_or(config.close_hour, 18),
            close_minute=_int_or(config.close_minute, 0),
            active_days=parse_active_days(config.active_days),
            timezone=config.timezone or "America/Argentina/Buenos_Aires",
        )
        for value, upper in (
            (spec.open_hour, 23),
            (spec.close_hour, 23),
            (spec.open_minute, 59),
            (spec.close_minute, 59),
        ):
            if not 0 <= value <= upper:
                raise ValueError(f"schedule time out of range: {value}")
        try:
            pytz.timezone(spec.timezone)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"unknown timezone: {spec.timezone}") from exc
        return spec

    def is_enabled(self, operation: str) -> bool:
        if operation == OPERATION_OPEN:
            return self.auto_open_enabled
        if operation == OPERATION_CLOSE:
            return self.auto_close_enabled
        return False

    def minutes_of_day(self, operation: str) -> int:
        if operation == OPERATION_OPEN:
            return self.open_hour * 60 + self.open_minute
        return self.close_hour * 60 + self.close_minute

    def scheduled_time(self, operation: str) -> time:
        if operation == OPERATION_OPEN:
            return time(self.open_hour, self.open_minute)
        return time(self.close_hour, self.close_minute)

    @property
    def closes_after_midnight(self) -> bool:
        """A close at or before the open time belongs to the next calendar day."""
        return (self.close_hour, self.close_minute) <= (self.open_hour, self.open_minute)

    def anchor_weekday(self, operation: str, weekday: int) -> int:
        """
        Weekday whose active flag governs ``operation`` observed on ``weekday``.
        An after-midnight close is checked against the previous day, the day
        its register was opened.
        """
        if operation == OPERATION_CLOSE and self.closes_after_midnight:
            return (weekday + 5) % 7 + 1
        return weekday


@dataclass(frozen=True)
class ScheduledOperation:
    type: str  # "auto_open" | "auto_close"
    scheduled_time: datetime  # aware, tenant local time
    enabled: bool


def _int_or(value, default: int) -> int:
    if value is None:
        return default
    return int(value)


def parse_active_days(value: Union[str, Iterable[int], None]) -> FrozenSet[int]:
    """'1,2,3' or [1, 2, 3] -> frozenset({1, 2, 3}); invalid tokens are dropped."""
    if value is None:
        return frozenset(range(1, 8))
    tokens = value.split(",") if isinstance(value, str) else value
    days = set()
    for token in tokens:
        try:
            day = int(str(token).strip())
        except ValueError:
            continue
        if 1 <= day <= 7:
            days.add(day)
    return frozenset(days)


def should_execute(
    config,
    operation: str,
    now: datetime,
    window_minutes: int = DEFAULT_WINDOW_MINUTES,
) -> bool:
    """
    Decide whether ``operation`` ("open" or "close") is due at ``now``.

    Fires when the local weekday (anchored per ``ScheduleSpec.anchor_weekday``)
    is active and ``0 <= now_minutes - scheduled_minutes < window_minutes``.
    Malformed configuration never fires.
    """
    if config is None or operation not in OPERATIONS:
        return False
    try:
        spec = config if isinstance(config, ScheduleSpec) else ScheduleSpec.from_config(config)
    except (ValueError, TypeError):
        return False

    if not spec.is_enabled(operation):
        return False

    local_now = to_local(now, spec.timezone)
    weekday = spec.anchor_weekday(operation, local_now.isoweekday())
    if weekday not in spec.active_days:
        return False

    current_minutes = local_now.hour * 60 + local_now.minute
    delta = current_minutes - spec.minutes_of_day(operation)
    return 0 <= delta < window_minutes


def next_occurrence(spec: ScheduleSpec, operation: str, now: datetime) -> Optional[datetime]:
    """
    First local moment strictly after ``now`` at which ``operation`` is
    scheduled on an active day, or None when no weekday is active.
    """
    local_now = to_local(now, spec.timezone)
    at = spec.scheduled_time(operation)
    # Eight days so today's weekday is reachable again next week
    for offset in range(8):
        day = local_now.date() + timedelta(days=offset)
        candidate = localize(day, at, spec.timezone)
        if candidate <= local_now:
            continue
        if spec.anchor_weekday(operation, day.isoweekday()) in spec.active_days:
            return candidate
    return None


def next_occurrences(config, now: datetime) -> List[ScheduledOperation]:
    """Project the next auto_open / auto_close after ``now`` for enabled operations."""
    if config is None:
        return []
    try:
        spec = ScheduleSpec.from_config(config)
    except (ValueError, TypeError):
        return []

    operations = []
    for operation in OPERATIONS:
        if not spec.is_enabled(operation):
            continue
        scheduled = next_occurrence(spec, operation, now)
        if scheduled is None:
            continue
        operations.append(
            ScheduledOperation(type=f"auto_{operation}", scheduled_time=scheduled, enabled=True)
        )
    return operations
