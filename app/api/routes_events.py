"""
Event API routes
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.schemas.event import EventCreate, EventUpdate, OpenStateUpdate
from app.schemas.user import UserSnapshot
from app.services.admission_service import remaining_quota
from app.services.checkin_service import CheckInService
from app.services.event_service import EventService
from app.services.export_service import ExportService
from app.services.guest_service import load_event
from app.services.outcomes import Rejected
from app.services.repositories import PersistenceError, UserRepo
from app.services.stats_service import StatsService
from app.api.ws import websocket_manager
from app.utils.security import get_store_session, require_approved_user, require_staff
from app.utils.responses import (
    rejection_response,
    result_response,
    service_unavailable_error,
    success_response,
)

router = APIRouter()

event_service = EventService(websocket_manager)
checkin_service = CheckInService(websocket_manager)

@router.get("")
async def list_events(
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    try:
        events = EventService.list_events(db)
    except PersistenceError:
        service_unavailable_error("Failed to load events. Please try again.")

    return success_response(
        message="Events retrieved",
        data=[
            {
                "id": event.id,
                "name": event.name,
                "date": event.date,
                "type": event.type,
                "open": event.open,
                "frontDoorMode": event.front_door_mode,
                "guestCount": len(event.guest_list),
                "waitlistCount": len(event.wait_list),
            }
            for event in events
        ]
    )

@router.post("")
async def create_event(
    event_data: EventCreate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    """Create a new event; it starts closed"""
    result = EventService.create_event(db, user, event_data)
    return result_response(result, status_code=201)

@router.get("/{event_id}")
async def get_event(
    event_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    """Event with both lists and the caller's remaining quota"""
    event = load_event(db, event_id)
    if isinstance(event, Rejected):
        return rejection_response(event)

    return success_response(
        message="Event retrieved",
        data={**event.to_store(), "remainingQuota": remaining_quota(event, user)}
    )

@router.patch("/{event_id}")
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    result = await event_service.update_event(db, event_id, user, event_data)
    return result_response(result)

@router.put("/{event_id}/open")
async def set_event_open(
    event_id: str,
    data: OpenStateUpdate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    """Open or close the list"""
    result = await event_service.set_open(db, event_id, user, data.open)
    return result_response(result)

@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    result = await event_service.delete_event(db, event_id, user)
    return result_response(result)

@router.post("/{event_id}/front-door")
async def toggle_front_door(
    event_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    """Switch front door (check-in) mode on or off"""
    result = await checkin_service.toggle_front_door(db, event_id, user)
    return result_response(result)

@router.get("/{event_id}/stats")
async def get_event_stats(
    event_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    event = load_event(db, event_id)
    if isinstance(event, Rejected):
        return rejection_response(event)

    return success_response(message="Event statistics", data=StatsService.event_stats(db, event))

@router.get("/{event_id}/export")
async def export_guest_list(
    event_id: str,
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    include_waitlist: bool = True,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    """Download the guest list as CSV or Excel"""
    event = load_event(db, event_id)
    if isinstance(event, Rejected):
        return rejection_response(event)

    try:
        display_names = {u.id: u.display_name for u in UserRepo.list(db)}
    except PersistenceError:
        service_unavailable_error("Failed to load users for export. Please try again.")

    df = ExportService.build_dataframe(event, display_names, include_waitlist=include_waitlist)
    if format == "xlsx":
        content = ExportService.to_excel(df)
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    else:
        content = ExportService.to_csv(df)
        media_type = "text/csv"

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={ExportService.filename(event, format)}"}
    )
