"""
Account API routes for the signed-in member
"""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.schemas.guest import PersonalGuestCreate
from app.schemas.user import UserProfileUpdate, UserRegister, UserSnapshot
from app.services.user_service import UserService
from app.utils.security import get_current_user, get_current_user_id, get_store_session
from app.utils.responses import result_response, success_response

router = APIRouter()

@router.post("/register")
async def register(
    data: UserRegister,
    user_id: str = Depends(get_current_user_id),
    db: Optional[Session] = Depends(get_store_session)
):
    """Create the caller's member record on first sign-in"""
    result = UserService.register(db, user_id, data)
    return result_response(result, status_code=201)

@router.get("")
async def get_profile(user: UserSnapshot = Depends(get_current_user)):
    """Caller's record, including approval state for the waiting page"""
    return success_response(message="User retrieved", data=user.to_store())

@router.patch("")
async def update_profile(
    data: UserProfileUpdate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(get_current_user)
):
    result = UserService.update_profile(db, user, data)
    return result_response(result)

@router.post("/personal-guests")
async def add_personal_guest(
    data: PersonalGuestCreate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(get_current_user)
):
    result = UserService.add_personal_guest(db, user, data.name)
    return result_response(result, status_code=201)

@router.delete("/personal-guests/{guest_id}")
async def remove_personal_guest(
    guest_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(get_current_user)
):
    result = UserService.remove_personal_guest(db, user, guest_id)
    return result_response(result)
