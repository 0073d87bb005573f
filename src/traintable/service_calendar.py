"""Decides which calendar services run on a given date."""

from datetime import date
from typing import FrozenSet

from .models import SERVICE_ADDED
from .snapshot import FeedSnapshot


def is_active(snapshot: FeedSnapshot, service_id: str, day: date) -> bool:
    """
    Return whether a service runs on a date.

    A calendar_dates exception for exactly (service_id, day) wins outright.
    Otherwise the service needs a calendar entry whose date range covers the
    day and whose weekday flag is set. Unknown services never run.
    """
    exception_type = snapshot.calendar_exceptions.get((service_id, day))
    if exception_type is not None:
        return exception_type == SERVICE_ADDED

    entry = snapshot.calendar_by_service.get(service_id)
    if entry is None:
        return False
    if not entry.covers(day):
        return False
    return entry.runs_on(day.weekday())


def active_services(snapshot: FeedSnapshot, day: date) -> FrozenSet[str]:
    """All service ids running on a date, including exception-only services."""
    service_ids = set(snapshot.calendar_by_service)
    service_ids.update(service_id for service_id, _ in snapshot.calendar_exceptions)
    return frozenset(s for s in service_ids if is_active(snapshot, s, day))
