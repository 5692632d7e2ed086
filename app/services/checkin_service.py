"""
Front-door check-in with real-time broadcasting.

A guest on an event's guest list is either not checked in (``checkedIn == -1``)
or checked in at a timestamp string. Only Admins move guests between the two
states; checking in additionally needs the event in front-door mode, which an
Admin can only switch on while the list is closed.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.api.ws import WebSocketManager
from app.schemas.event import EventSnapshot, GuestListType
from app.schemas.guest import NOT_CHECKED_IN
from app.schemas.user import UserSnapshot
from app.services.guest_service import commit_event_changes, load_event
from app.services.outcomes import Applied, ErrorCode, FieldUpdate, GuestMutation, Rejected, Result
from app.utils.timestamps import checkin_timestamp

logger = logging.getLogger(__name__)


def check_in(
    event: EventSnapshot,
    guest_id: str,
    actor: UserSnapshot,
    now: Optional[datetime] = None,
) -> Result:
    """NotCheckedIn -> CheckedIn(now). Already checked-in guests are left as they are."""
    if not actor.is_admin:
        return Rejected(ErrorCode.FORBIDDEN, "Only Admins can check in guests.")
    if not event.front_door_mode:
        return Rejected(ErrorCode.FRONT_DOOR_OFF, "Front door mode must be on to check in guests.")

    guest = event.guest_list.get(guest_id)
    if guest is None:
        return Rejected(ErrorCode.NOT_FOUND, "Guest not found on the guest list.")
    if guest.is_checked_in:
        return Applied(message=f"{guest.name} is already checked in", data={"checkedIn": guest.checked_in})

    checked_in = checkin_timestamp(now)
    return Applied(
        message=f"Checked in {guest.name}",
        mutations=(GuestMutation(GuestListType.GUEST_LIST, guest_id, guest.model_copy(update={"checked_in": checked_in})),),
        data={"guest_id": guest_id, "checkedIn": checked_in},
    )


def uncheck_in(event: EventSnapshot, guest_id: str, actor: UserSnapshot) -> Result:
    """CheckedIn -> NotCheckedIn. Guests that are not checked in are left as they are."""
    if not actor.is_admin:
        return Rejected(ErrorCode.FORBIDDEN, "Only Admins can uncheck in guests.")

    guest = event.guest_list.get(guest_id)
    if guest is None:
        return Rejected(ErrorCode.NOT_FOUND, "Guest not found on the guest list.")
    if not guest.is_checked_in:
        return Applied(message=f"{guest.name} is not checked in", data={"checkedIn": NOT_CHECKED_IN})

    return Applied(
        message=f"Unchecked in {guest.name}",
        mutations=(GuestMutation(GuestListType.GUEST_LIST, guest_id, guest.model_copy(update={"checked_in": NOT_CHECKED_IN})),),
        data={"guest_id": guest_id, "checkedIn": NOT_CHECKED_IN},
    )


def toggle_front_door_mode(event: EventSnapshot, actor: UserSnapshot) -> Result:
    if not actor.is_admin:
        return Rejected(ErrorCode.FORBIDDEN, "Only Admins can use front door mode.")
    if event.open:
        return Rejected(ErrorCode.EVENT_OPEN, "List must be closed to use front door mode")

    enabled = not event.front_door_mode
    return Applied(
        message=f"Front door mode {'on' if enabled else 'off'}",
        mutations=(FieldUpdate("frontDoorMode", enabled),),
        data={"frontDoorMode": enabled},
    )


class CheckInService:
    """Service for handling guest check-ins"""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    async def check_in_guest(self, db: Optional[Session], event_id: str, guest_id: str, actor: UserSnapshot) -> Result:
        """Check in a guest and broadcast the update"""
        event = load_event(db, event_id)
        if isinstance(event, Rejected):
            return event

        result = commit_event_changes(db, event, check_in(event, guest_id, actor))
        await self._broadcast(event_id, "checkin", result, was_already_checked_in=result.ok and result.is_noop)
        return result

    async def uncheck_in_guest(self, db: Optional[Session], event_id: str, guest_id: str, actor: UserSnapshot) -> Result:
        event = load_event(db, event_id)
        if isinstance(event, Rejected):
            return event

        result = commit_event_changes(db, event, uncheck_in(event, guest_id, actor))
        await self._broadcast(event_id, "uncheckin", result)
        return result

    async def toggle_front_door(self, db: Optional[Session], event_id: str, actor: UserSnapshot) -> Result:
        event = load_event(db, event_id)
        if isinstance(event, Rejected):
            return event

        result = commit_event_changes(db, event, toggle_front_door_mode(event, actor))
        if result.ok:
            logger.info(f"{actor.id} set front door mode on event {event_id} to {result.data['frontDoorMode']}")
        await self._broadcast(event_id, "front_door_mode", result)
        return result

    async def _broadcast(self, event_id: str, update_type: str, result: Result, **extra):
        if not isinstance(result, Applied):
            return
        if extra.get("was_already_checked_in"):
            result = replace(result, data={**result.data, "was_already_checked_in": True})
        elif result.is_noop:
            return

        message = {
            "type": update_type,
            "event_id": event_id,
            "message": result.message,
            "data": result.data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        await self.websocket_manager.broadcast_to_event(event_id, message)
