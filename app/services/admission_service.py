"""
Guest admission rules.

``decide_admission`` is the single place that decides whether a new guest lands
on an event's guest list, its waitlist, or is turned away. The checks run in a
fixed order:

1. closed event (only an Admin in front-door mode gets through)
2. inviter without the ``privileges`` flag
3. empty or whitespace-only name
4. blacklisted name
5. quota: Admins, or inviters under ``maxGuests`` on the guest list, go to the
   guest list; everybody else goes to the waitlist

The functions here are pure. Callers apply the returned mutation to the store.
"""

import secrets
from datetime import datetime
from typing import AbstractSet, Mapping, Optional

from app.schemas.event import EventSnapshot, GuestListType
from app.schemas.guest import GuestEntry
from app.schemas.user import UserSnapshot
from app.services.blacklist_service import is_blacklisted
from app.services.outcomes import (
    AdmissionOutcome,
    AdmitToMainList,
    AdmitToWaitlist,
    Applied,
    ErrorCode,
    GuestMutation,
    Rejected,
    Result,
)
from app.utils.timestamps import checkin_timestamp

CLOSED_MESSAGE = "The event is closed and no guests can be added"
NO_PRIVILEGES_MESSAGE = "You don't have social privileges and can't add guests"
EMPTY_NAME_MESSAGE = "Guest name cannot be empty."
BLACKLISTED_MESSAGE = "This guest is blacklisted and cannot be added."


def count_by_inviter(guest_map: Mapping[str, GuestEntry], inviter_id: str) -> int:
    """Number of guests in ``guest_map`` added by ``inviter_id``"""
    return sum(1 for guest in guest_map.values() if guest.added_by == inviter_id)


def remaining_quota(event: EventSnapshot, inviter: UserSnapshot) -> Optional[int]:
    """Guest list spots the inviter has left, or None when uncapped (Admins)"""
    if inviter.is_admin:
        return None
    return max(event.max_guests - count_by_inviter(event.guest_list, inviter.id), 0)


def decide_admission(
    event: EventSnapshot,
    inviter: UserSnapshot,
    guest_name: str,
    blacklist: AbstractSet[str],
) -> AdmissionOutcome:
    if not event.open and not (inviter.is_admin and event.front_door_mode):
        return Rejected(ErrorCode.CLOSED, CLOSED_MESSAGE)

    if not inviter.privileges:
        return Rejected(ErrorCode.NO_PRIVILEGES, NO_PRIVILEGES_MESSAGE)

    name = (guest_name or "").strip()
    if not name:
        return Rejected(ErrorCode.EMPTY_NAME, EMPTY_NAME_MESSAGE)

    if is_blacklisted(name, blacklist):
        return Rejected(ErrorCode.BLACKLISTED, BLACKLISTED_MESSAGE)

    guest = GuestEntry(name=name, added_by=inviter.id)
    if inviter.is_admin or count_by_inviter(event.guest_list, inviter.id) < event.max_guests:
        return AdmitToMainList(guest)
    return AdmitToWaitlist(guest)


def decide_vouch(
    event: EventSnapshot,
    actor: UserSnapshot,
    guest_name: str,
    password: str,
    expected_password: str,
    blacklist: AbstractSet[str],
    guest_id: str,
    now: Optional[datetime] = None,
) -> Result:
    """Admin walk-in at the front door: straight onto the guest list, already checked in"""
    if not actor.is_admin:
        return Rejected(ErrorCode.FORBIDDEN, "Only Admins can vouch for guests.")
    if not event.front_door_mode or event.open:
        return Rejected(ErrorCode.FRONT_DOOR_OFF, "Vouching can only be done in front door mode.")
    if not expected_password:
        return Rejected(ErrorCode.FORBIDDEN, "Vouching is disabled until a vouch password is configured.")
    if not secrets.compare_digest((password or "").encode("utf-8"), expected_password.encode("utf-8")):
        return Rejected(ErrorCode.FORBIDDEN, "Incorrect password. Please try again.")

    name = (guest_name or "").strip()
    if not name:
        return Rejected(ErrorCode.EMPTY_NAME, EMPTY_NAME_MESSAGE)
    if is_blacklisted(name, blacklist):
        return Rejected(ErrorCode.BLACKLISTED, BLACKLISTED_MESSAGE)

    guest = GuestEntry(name=name, added_by=actor.id, checked_in=checkin_timestamp(now))
    return Applied(
        message=f"Vouched for {name}",
        mutations=(GuestMutation(GuestListType.GUEST_LIST, guest_id, guest),),
        data={"guest_id": guest_id, "list": GuestListType.GUEST_LIST.value},
    )


def decide_removal(
    event: EventSnapshot,
    actor: UserSnapshot,
    list_name: GuestListType,
    guest_id: str,
) -> Result:
    """Only the guest's adder or an Admin may remove a guest"""
    guest = event.guests(list_name).get(guest_id)
    if guest is None:
        return Rejected(ErrorCode.NOT_FOUND, f"Guest not found on the {list_name.label}.")
    if not (actor.is_admin or guest.added_by == actor.id):
        return Rejected(ErrorCode.FORBIDDEN, "You can only remove guests you added.")

    return Applied(
        message=f"Removed guest from {list_name.label}",
        mutations=(GuestMutation(list_name, guest_id, None),),
        data={"guest_id": guest_id, "list": list_name.value},
    )
