"""
Guest list actions with real-time broadcasting
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import AbstractSet, Optional, Tuple, Union

from sqlalchemy.orm import Session

from app.api.ws import WebSocketManager
from app.core.config import settings
from app.schemas.event import EventSnapshot, GuestListType
from app.schemas.user import UserSnapshot
from app.services.admission_service import decide_admission, decide_removal, decide_vouch
from app.services.approval_service import approve
from app.services.outcomes import Applied, ErrorCode, Rejected, Result
from app.services.repositories import (
    BlacklistRepo,
    ConcurrentUpdateError,
    EventRepo,
    PersistenceError,
    new_record_id,
)

logger = logging.getLogger(__name__)

EVENT_NOT_FOUND_MESSAGE = "Event not found"


def load_event(db: Optional[Session], event_id: str) -> Union[EventSnapshot, Rejected]:
    try:
        event = EventRepo.get(db, event_id)
    except PersistenceError as e:
        logger.error(f"Error fetching event {event_id}: {e}")
        return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to load the event. Please try again.")
    if event is None:
        return Rejected(ErrorCode.NOT_FOUND, EVENT_NOT_FOUND_MESSAGE)
    return event


def load_event_and_blacklist(
    db: Optional[Session], event_id: str
) -> Union[Tuple[EventSnapshot, AbstractSet[str]], Rejected]:
    event = load_event(db, event_id)
    if isinstance(event, Rejected):
        return event
    try:
        blacklist = BlacklistRepo.names(db)
    except PersistenceError as e:
        logger.error(f"Error fetching blacklist: {e}")
        return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to load the blacklist. Please try again.")
    return event, blacklist


def commit_event_changes(db: Optional[Session], event: EventSnapshot, result: Result) -> Result:
    """Write an engine's mutations, conditional on the snapshot's version"""
    if not result.ok or result.is_noop:
        return result

    try:
        version = EventRepo.apply(db, event.id, event.version, result.mutations)
    except ConcurrentUpdateError as e:
        logger.warning(f"Concurrent update on event {event.id}: {e}")
        return Rejected(ErrorCode.CONFLICT, "The guest list changed while saving. Please try again.")
    except PersistenceError as e:
        logger.error(f"Error writing event {event.id}: {e}")
        return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to save changes. Please try again.")

    return replace(result, data={**result.data, "version": version})


class GuestService:
    """Service for adding, approving and removing guests"""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    async def add_guest(
        self,
        db: Optional[Session],
        event_id: str,
        inviter: UserSnapshot,
        guest_name: str,
    ) -> Result:
        """Run the admission rules for a new guest and store the outcome"""
        loaded = load_event_and_blacklist(db, event_id)
        if isinstance(loaded, Rejected):
            return loaded
        event, blacklist = loaded

        outcome = decide_admission(event, inviter, guest_name, blacklist)
        if isinstance(outcome, Rejected):
            logger.info(f"Admission rejected on event {event_id} for {inviter.id}: {outcome.reason.value}")
            return outcome

        result = commit_event_changes(db, event, outcome.to_applied(new_record_id()))
        await self._broadcast(event_id, "guest_added", result)
        return result

    async def add_from_personal(
        self,
        db: Optional[Session],
        event_id: str,
        inviter: UserSnapshot,
        personal_guest_id: str,
    ) -> Result:
        """Admit a guest pre-staged on the inviter's personal list"""
        personal = inviter.personal_guest_list.get(personal_guest_id)
        if personal is None:
            return Rejected(
                ErrorCode.NOT_FOUND,
                "Failed to add guest from personal guest list: Guest does not exist. Please try again.",
            )
        return await self.add_guest(db, event_id, inviter, personal.name)

    async def vouch(
        self,
        db: Optional[Session],
        event_id: str,
        actor: UserSnapshot,
        guest_name: str,
        password: str,
    ) -> Result:
        loaded = load_event_and_blacklist(db, event_id)
        if isinstance(loaded, Rejected):
            return loaded
        event, blacklist = loaded

        result = decide_vouch(
            event, actor, guest_name, password, settings.VOUCH_PASSWORD, blacklist, new_record_id()
        )
        result = commit_event_changes(db, event, result)
        await self._broadcast(event_id, "guest_vouched", result)
        return result

    async def approve_guest(
        self,
        db: Optional[Session],
        event_id: str,
        approver: UserSnapshot,
        waitlist_guest_id: str,
    ) -> Result:
        loaded = load_event_and_blacklist(db, event_id)
        if isinstance(loaded, Rejected):
            return loaded
        event, blacklist = loaded

        result = approve(event, waitlist_guest_id, approver, blacklist, new_record_id())
        result = commit_event_changes(db, event, result)
        if result.ok:
            logger.info(f"Moved guest {waitlist_guest_id} from waitlist to guest list on event {event_id}")
        await self._broadcast(event_id, "guest_approved", result)
        return result

    async def remove_guest(
        self,
        db: Optional[Session],
        event_id: str,
        actor: UserSnapshot,
        list_name: GuestListType,
        guest_id: str,
    ) -> Result:
        event = load_event(db, event_id)
        if isinstance(event, Rejected):
            return event

        result = commit_event_changes(db, event, decide_removal(event, actor, list_name, guest_id))
        await self._broadcast(event_id, "guest_removed", result)
        return result

    async def _broadcast(self, event_id: str, update_type: str, result: Result):
        """Tell connected viewers an event's lists changed"""
        if not isinstance(result, Applied) or result.is_noop:
            return

        message = {
            "type": update_type,
            "event_id": event_id,
            "message": result.message,
            "data": result.data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        await self.websocket_manager.broadcast_to_event(event_id, message)
