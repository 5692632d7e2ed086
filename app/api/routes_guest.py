"""
Guest list API routes for a single event
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.schemas.event import GuestListType
from app.schemas.guest import FromPersonalRequest, GuestAddRequest, VouchRequest
from app.schemas.user import UserSnapshot
from app.services.checkin_service import CheckInService
from app.services.guest_service import GuestService
from app.api.ws import websocket_manager
from app.utils.security import get_client_ip, get_store_session, rate_limit_check, require_approved_user
from app.utils.responses import rate_limit_error, result_response

router = APIRouter()

guest_service = GuestService(websocket_manager)
checkin_service = CheckInService(websocket_manager)

def _enforce_rate_limit(request: Request):
    if not rate_limit_check(get_client_ip(request)):
        rate_limit_error()

@router.post("/{event_id}/guests")
async def add_guest(
    event_id: str,
    request: Request,
    guest_data: GuestAddRequest,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    """Add a guest; lands on the guest list or the waitlist depending on quota"""
    _enforce_rate_limit(request)
    result = await guest_service.add_guest(db, event_id, user, guest_data.name)
    return result_response(result, status_code=201)

@router.post("/{event_id}/guests/from-personal")
async def add_guest_from_personal_list(
    event_id: str,
    request: Request,
    data: FromPersonalRequest,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    _enforce_rate_limit(request)
    result = await guest_service.add_from_personal(db, event_id, user, data.guest_id)
    return result_response(result, status_code=201)

@router.post("/{event_id}/vouch")
async def vouch_for_guest(
    event_id: str,
    data: VouchRequest,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    """Front door walk-in vouched for by an Admin"""
    result = await guest_service.vouch(db, event_id, user, data.name, data.password)
    return result_response(result, status_code=201)

@router.post("/{event_id}/waitlist/{guest_id}/approve")
async def approve_waitlisted_guest(
    event_id: str,
    guest_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    result = await guest_service.approve_guest(db, event_id, user, guest_id)
    return result_response(result)

@router.delete("/{event_id}/guests/{guest_id}")
async def remove_guest(
    event_id: str,
    guest_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    result = await guest_service.remove_guest(db, event_id, user, GuestListType.GUEST_LIST, guest_id)
    return result_response(result)

@router.delete("/{event_id}/waitlist/{guest_id}")
async def remove_waitlisted_guest(
    event_id: str,
    guest_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    result = await guest_service.remove_guest(db, event_id, user, GuestListType.WAIT_LIST, guest_id)
    return result_response(result)

@router.post("/{event_id}/guests/{guest_id}/checkin")
async def check_in_guest(
    event_id: str,
    guest_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    """Check in a guest and broadcast update"""
    result = await checkin_service.check_in_guest(db, event_id, guest_id, user)
    return result_response(result)

@router.delete("/{event_id}/guests/{guest_id}/checkin")
async def uncheck_in_guest(
    event_id: str,
    guest_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_approved_user)
):
    result = await checkin_service.uncheck_in_guest(db, event_id, guest_id, user)
    return result_response(result)
