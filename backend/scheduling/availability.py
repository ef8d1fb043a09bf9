"""Advisory availability: the slot grid minus what is already taken.

Results may be stale by the time a booking lands; the booking transactor
never relies on them.
"""

from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from backend.core import config
from backend.models.slot import ProviderSlot
from backend.scheduling.queries import get_provider
from backend.scheduling.slot_template import SlotTemplate, SlotWindow, default_template


def get_taken_slot_starts(
    db: Session,
    provider_id: int,
    range_start: datetime,
    range_end: datetime,
    allow_rebooking: bool = True,
) -> set[datetime]:
    """Start times in ``[range_start, range_end)`` that cannot be offered for ``provider_id``.

    Booked slots are always taken. Released slots (from cancellations) are
    also taken when cancelled times may not be rebooked.
    """
    query = db.query(ProviderSlot.start_time).filter(
        ProviderSlot.provider_id == provider_id,
        ProviderSlot.start_time >= range_start,
        ProviderSlot.start_time < range_end,
    )
    if allow_rebooking:
        query = query.filter(ProviderSlot.is_booked.is_(True))

    return {start_time.replace(second=0, microsecond=0) for (start_time,) in query.all()}


def open_slots_for_day(
    db: Session,
    provider_id: int,
    day: date,
    now: datetime | None = None,
    template: SlotTemplate | None = None,
    allow_rebooking: bool | None = None,
) -> list[SlotWindow]:
    """Open windows on ``day`` for a provider the caller has already resolved."""
    now = now or datetime.now()
    template = template or default_template()
    if allow_rebooking is None:
        allow_rebooking = config.ALLOW_REBOOKING_CANCELLED_SLOTS

    next_day = day + timedelta(days=1)
    candidates = template.generate(provider_id, day, next_day, now)
    taken = get_taken_slot_starts(
        db,
        provider_id,
        datetime.combine(day, datetime.min.time()),
        datetime.combine(next_day, datetime.min.time()),
        allow_rebooking=allow_rebooking,
    )
    return [window for window in candidates if window.start_time not in taken]


def available_slots(
    db: Session,
    provider_id: int,
    day: date,
    now: datetime | None = None,
    template: SlotTemplate | None = None,
    allow_rebooking: bool | None = None,
) -> list[SlotWindow]:
    get_provider(db, provider_id)
    return open_slots_for_day(db, provider_id, day, now=now, template=template, allow_rebooking=allow_rebooking)


def available_slots_for_lookahead(
    db: Session,
    provider_id: int,
    now: datetime | None = None,
    template: SlotTemplate | None = None,
    allow_rebooking: bool | None = None,
) -> list[SlotWindow]:
    now = now or datetime.now()
    template = template or default_template()
    if allow_rebooking is None:
        allow_rebooking = config.ALLOW_REBOOKING_CANCELLED_SLOTS

    get_provider(db, provider_id)

    candidates = template.generate_lookahead(provider_id, now)
    if not candidates:
        return []

    taken = get_taken_slot_starts(
        db,
        provider_id,
        candidates[0].start_time,
        candidates[-1].end_time,
        allow_rebooking=allow_rebooking,
    )
    return [window for window in candidates if window.start_time not in taken]
