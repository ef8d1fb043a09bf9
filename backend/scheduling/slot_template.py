"""Canonical slot grid for providers.

Every provider shares one daily window and one fixed interval. The window
is half-open, ``[daily_start_hour:00, daily_end_hour:00)``, and a slot is
only part of the grid when it ends by close, so with the defaults the last
start of the day is 20:30.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, NamedTuple

from backend.core import config
from backend.core.errors import InvalidInput

_TWELVE_HOUR_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})\s?([AaPp][Mm])\s*$')
_TWENTY_FOUR_HOUR_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$')


class SlotWindow(NamedTuple):
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class SlotTemplate:
    daily_start_hour: int = 10
    daily_end_hour: int = 21
    interval_minutes: int = 30
    lookahead_days: int = 5

    def __post_init__(self):
        if not 0 <= self.daily_start_hour < 24:
            raise ValueError(f'daily_start_hour must be within 0..23, got {self.daily_start_hour}')
        if not 0 < self.daily_end_hour <= 24:
            raise ValueError(f'daily_end_hour must be within 1..24, got {self.daily_end_hour}')
        if self.daily_start_hour >= self.daily_end_hour:
            raise ValueError('daily_start_hour must be before daily_end_hour')
        if self.interval_minutes <= 0:
            raise ValueError(f'interval_minutes must be positive, got {self.interval_minutes}')
        if self.window_minutes % self.interval_minutes != 0:
            raise ValueError(
                f'interval_minutes ({self.interval_minutes}) must divide the daily window '
                f'({self.window_minutes} minutes)'
            )
        if self.lookahead_days < 1:
            raise ValueError(f'lookahead_days must be at least 1, got {self.lookahead_days}')

    @property
    def window_minutes(self) -> int:
        return (self.daily_end_hour - self.daily_start_hour) * 60

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)

    def day_open(self, day: date) -> datetime:
        return datetime.combine(day, time()) + timedelta(hours=self.daily_start_hour)

    def day_close(self, day: date) -> datetime:
        # daily_end_hour may be 24, which time() cannot represent.
        return datetime.combine(day, time()) + timedelta(hours=self.daily_end_hour)

    def iterate_day(self, day: date) -> Iterator[SlotWindow]:
        current = self.day_open(day)
        close = self.day_close(day)
        while current + self.interval <= close:
            yield SlotWindow(current, current + self.interval)
            current += self.interval

    def generate(self, provider_id: int, start_date: date, end_date: date, now: datetime) -> list[SlotWindow]:
        """Return every grid slot for days in ``[start_date, end_date)`` that starts after ``now``.

        The grid does not vary by provider; ``provider_id`` is accepted so
        callers can treat the result as that provider's candidate set.
        """
        del provider_id
        slots: list[SlotWindow] = []
        current_day = start_date
        while current_day < end_date:
            slots.extend(window for window in self.iterate_day(current_day) if window.start_time > now)
            current_day += timedelta(days=1)
        return slots

    def generate_lookahead(self, provider_id: int, now: datetime) -> list[SlotWindow]:
        first_day = now.date()
        return self.generate(provider_id, first_day, first_day + timedelta(days=self.lookahead_days), now)

    def is_on_grid(self, start_time: datetime) -> bool:
        if start_time.second or start_time.microsecond:
            return False
        offset = start_time - self.day_open(start_time.date())
        if offset < timedelta(0):
            return False
        if offset % self.interval:
            return False
        return start_time + self.interval <= self.day_close(start_time.date())

    def window_for(self, start_time: datetime) -> SlotWindow:
        return SlotWindow(start_time, start_time + self.interval)


def default_template() -> SlotTemplate:
    return SlotTemplate(
        daily_start_hour=config.SLOT_DAILY_START_HOUR,
        daily_end_hour=config.SLOT_DAILY_END_HOUR,
        interval_minutes=config.SLOT_INTERVAL_MINUTES,
        lookahead_days=config.SLOT_LOOKAHEAD_DAYS,
    )


def normalize_time(value: str) -> time:
    """Parse ``HH:MM`` or a 12-hour ``hh:mm am`` string."""
    match = _TWELVE_HOUR_PATTERN.match(value)
    if match:
        hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3).lower()
        if not 1 <= hour <= 12:
            raise ValueError(f'Invalid 12-hour time: {value!r}')
        if period == 'pm' and hour < 12:
            hour += 12
        if period == 'am' and hour == 12:
            hour = 0
        return time(hour, minute)

    match = _TWENTY_FOUR_HOUR_PATTERN.match(value)
    if match:
        return time(int(match.group(1)), int(match.group(2)), int(match.group(3) or 0))

    raise ValueError(f'Unrecognized time: {value!r}')


def normalize_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` or the legacy ``DD_MM_YYYY`` form."""
    value = value.strip()
    if '_' in value:
        day, month, year = value.split('_')
        return date(int(year), int(month), int(day))
    return date.fromisoformat(value)


def parse_slot_datetime(
    start_time: datetime | str | None = None,
    slot_date: str | None = None,
    slot_time: str | None = None,
) -> datetime:
    """Resolve a requested slot start from either a datetime or a date/time pair."""
    try:
        if isinstance(start_time, datetime):
            parsed = start_time
        elif isinstance(start_time, str) and start_time.strip():
            parsed = datetime.fromisoformat(start_time.strip())
        elif slot_date and slot_time:
            parsed = datetime.combine(normalize_date(slot_date), normalize_time(slot_time))
        else:
            raise ValueError('No slot start given')
    except (TypeError, ValueError) as exc:
        raise InvalidInput('invalid_date_time', 'Slot date/time could not be parsed.') from exc

    if parsed.tzinfo is not None:
        # Slots are stored as naive local times.
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
