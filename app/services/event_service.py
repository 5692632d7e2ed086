"""
Event administration: creation, edits, open/close and deletion
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.api.ws import WebSocketManager
from app.schemas.event import EventCreate, EventSnapshot, EventUpdate
from app.schemas.user import UserSnapshot
from app.services.guest_service import commit_event_changes, load_event
from app.services.outcomes import Applied, ErrorCode, FieldUpdate, Rejected, Result
from app.services.repositories import EventRepo, PersistenceError, new_record_id

logger = logging.getLogger(__name__)

STAFF_ONLY_MESSAGE = "Only Admin or Social members can manage events."


def validate_event_fields(name: Optional[str], date: Optional[str], type_: Optional[str], max_guests: Any) -> List[str]:
    """Form errors for an event; an empty list means the fields are usable"""
    errors = []
    if not (name or "").strip():
        errors.append("Name is required")
    if not (date or "").strip():
        errors.append("Date is required")
    if not (type_ or "").strip():
        errors.append("Type is required")
    if isinstance(max_guests, bool) or not isinstance(max_guests, int) or max_guests <= 0:
        errors.append("Max guests must be a positive number")
    return errors


def set_open_state(event: EventSnapshot, actor: UserSnapshot, open_: bool) -> Result:
    """Open or close an event's list. Opening always leaves front-door mode."""
    if not actor.is_staff:
        return Rejected(ErrorCode.FORBIDDEN, STAFF_ONLY_MESSAGE)
    if event.open == open_:
        return Applied(message=f"Event is already {'open' if open_ else 'closed'}", data={"open": open_})

    mutations = [FieldUpdate("open", open_)]
    if open_ and event.front_door_mode:
        mutations.append(FieldUpdate("frontDoorMode", False))
    return Applied(
        message=f"Event {'opened' if open_ else 'closed'}",
        mutations=tuple(mutations),
        data={"open": open_},
    )


class EventService:
    """Service for managing events"""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    @staticmethod
    def list_events(db: Optional[Session]) -> List[EventSnapshot]:
        return EventRepo.list(db)

    @staticmethod
    def create_event(db: Optional[Session], actor: UserSnapshot, data: EventCreate) -> Result:
        """Create a closed event from the form fields"""
        if not actor.is_staff:
            return Rejected(ErrorCode.FORBIDDEN, STAFF_ONLY_MESSAGE)

        errors = validate_event_fields(data.name, data.date, data.type, data.max_guests)
        if errors:
            return Rejected(ErrorCode.INVALID, "; ".join(errors))

        payload: Dict[str, Any] = {
            "id": new_record_id(),
            "name": data.name.strip(),
            "date": data.date.strip(),
            "type": data.type.strip(),
            "maxGuests": data.max_guests,
            "jobsURL": data.jobs_url.strip(),
            "open": False,
            "frontDoorMode": False,
        }
        try:
            event = EventRepo.create(db, payload)
        except PersistenceError as e:
            logger.error(f"Error creating event {payload['name']!r}: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to create event. Please try again.")

        logger.info(f"{actor.id} created event {event.id} ({event.name})")
        return Applied(message="Event created successfully", data=event.to_store())

    async def update_event(self, db: Optional[Session], event_id: str, actor: UserSnapshot, data: EventUpdate) -> Result:
        if not actor.is_staff:
            return Rejected(ErrorCode.FORBIDDEN, STAFF_ONLY_MESSAGE)

        event = load_event(db, event_id)
        if isinstance(event, Rejected):
            return event

        changes = data.model_dump(by_alias=True, exclude_none=True)
        merged = {**event.to_store(), **changes}
        errors = validate_event_fields(merged["name"], merged["date"], merged["type"], merged["maxGuests"])
        if errors:
            return Rejected(ErrorCode.INVALID, "; ".join(errors))

        mutations = tuple(
            FieldUpdate(field, value.strip() if isinstance(value, str) else value)
            for field, value in changes.items()
        )
        result = commit_event_changes(db, event, Applied(message="Event updated successfully", mutations=mutations))
        await self._broadcast(event_id, "event_updated", result)
        return result

    async def set_open(self, db: Optional[Session], event_id: str, actor: UserSnapshot, open_: bool) -> Result:
        event = load_event(db, event_id)
        if isinstance(event, Rejected):
            return event

        result = commit_event_changes(db, event, set_open_state(event, actor, open_))
        if result.ok and not result.is_noop:
            logger.info(f"{actor.id} {'opened' if open_ else 'closed'} event {event_id}")
        await self._broadcast(event_id, "event_updated", result)
        return result

    async def delete_event(self, db: Optional[Session], event_id: str, actor: UserSnapshot) -> Result:
        if not actor.is_admin:
            return Rejected(ErrorCode.FORBIDDEN, "Only Admins can delete events.")

        try:
            deleted = EventRepo.delete(db, event_id)
        except PersistenceError as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to delete event. Please try again.")
        if not deleted:
            return Rejected(ErrorCode.NOT_FOUND, "Event not found")

        logger.info(f"{actor.id} deleted event {event_id}")
        await self.websocket_manager.broadcast_to_event(event_id, {"type": "event_deleted", "event_id": event_id})
        return Applied(message="Event deleted successfully", data={"event_id": event_id})

    async def _broadcast(self, event_id: str, update_type: str, result: Result):
        if not isinstance(result, Applied) or result.is_noop:
            return
        await self.websocket_manager.broadcast_to_event(event_id, {
            "type": update_type,
            "event_id": event_id,
            "message": result.message,
            "data": result.data,
        })
