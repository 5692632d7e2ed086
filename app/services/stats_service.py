"""
Per-event statistics for the stats page
"""

import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from app.schemas.event import EventSnapshot
from app.services.repositories import PersistenceError, UserRepo
from app.utils.timestamps import parse_checkin_timestamp

logger = logging.getLogger(__name__)

NO_TOP_INVITER = "—"


def top_inviter(event: EventSnapshot, display_names: Mapping[str, str]) -> str:
    """Display name of the member whose guests checked in the most.

    Ties go to whoever reached the count first in list order. Inviters without
    a user record are shown by uid.
    """
    counts = Counter(
        guest.added_by for guest in event.guest_list.values() if guest.is_checked_in
    )
    if not counts:
        return NO_TOP_INVITER
    uid, _ = counts.most_common(1)[0]
    return display_names.get(uid) or uid


def checkin_histogram(event: EventSnapshot) -> List[Dict[str, float]]:
    """Check-ins per minute as ``{"x": hour + minute / 60, "y": count}`` points, sorted by x"""
    buckets: Counter = Counter()
    for guest in event.guest_list.values():
        if not guest.is_checked_in:
            continue
        when = parse_checkin_timestamp(guest.checked_in)
        if when is None:
            logger.warning(f"Unparseable check-in time {guest.checked_in!r} on event {event.id}")
            continue
        buckets[when.hour + when.minute / 60] += 1
    return [{"x": x, "y": count} for x, count in sorted(buckets.items())]


def compute_event_stats(event: EventSnapshot, display_names: Mapping[str, str]) -> dict:
    total = len(event.guest_list)
    checked_in = sum(1 for guest in event.guest_list.values() if guest.is_checked_in)
    return {
        "event_id": event.id,
        "event_name": event.name,
        "total_guests": total,
        "waitlist_count": len(event.wait_list),
        "checked_in": checked_in,
        "not_checked_in": total - checked_in,
        "checkin_percentage": round(checked_in / total * 100, 1) if total else 0.0,
        "top_inviter": top_inviter(event, display_names),
        "checkin_histogram": checkin_histogram(event),
    }


class StatsService:
    @staticmethod
    def event_stats(db: Optional[Session], event: EventSnapshot) -> dict:
        try:
            display_names = {user.id: user.display_name for user in UserRepo.list(db)}
        except PersistenceError as e:
            logger.error(f"Error fetching users for stats: {e}")
            display_names = {}
        return compute_event_stats(event, display_names)
