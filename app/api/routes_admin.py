"""
Admin API routes: members, blacklist and maintenance
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends
from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy.orm import Session

from app.schemas.blacklist import BlacklistAdd
from app.schemas.user import PrivilegesUpdate, StatusUpdate, UserSnapshot
from app.services.blacklist_service import BlacklistService
from app.services.migration_service import CURRENT_SCHEMA_VERSION, migrate_store
from app.services.repositories import PersistenceError
from app.services.user_service import UserAdminService
from app.utils.security import get_store_session, require_admin, require_staff
from app.utils.responses import result_response, service_unavailable_error, success_response

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/users")
async def list_users(
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    try:
        users = UserAdminService.list_users(db)
    except PersistenceError:
        service_unavailable_error("Failed to load users. Please try again.")

    return success_response(
        message="Users retrieved",
        data=[
            {
                "id": u.id,
                "displayName": u.display_name,
                "email": u.email,
                "approved": u.approved,
                "status": u.status.value,
                "privileges": u.privileges,
            }
            for u in users
        ]
    )

@router.post("/users/{user_id}/approve")
async def approve_user(
    user_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_staff)
):
    result = UserAdminService.approve_user(db, user, user_id)
    return result_response(result)

@router.put("/users/{user_id}/status")
async def change_user_status(
    user_id: str,
    data: StatusUpdate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_admin)
):
    result = UserAdminService.change_status(db, user, user_id, data.status)
    return result_response(result)

@router.put("/users/{user_id}/privileges")
async def change_user_privileges(
    user_id: str,
    data: PrivilegesUpdate,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_admin)
):
    """Grant or revoke social privileges (the right to add guests)"""
    result = UserAdminService.change_privileges(db, user, user_id, data.privileges)
    return result_response(result)

@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_admin)
):
    result = UserAdminService.delete_user(db, user, user_id)
    return result_response(result)

@router.get("/blacklist")
async def list_blacklist(
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_admin)
):
    try:
        entries = BlacklistService.list_entries(db)
    except PersistenceError:
        service_unavailable_error("Failed to load the blacklist. Please try again.")

    return success_response(
        message="Blacklist retrieved",
        data=[entry.model_dump(by_alias=True) for entry in entries]
    )

@router.post("/blacklist")
async def add_to_blacklist(
    data: BlacklistAdd,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_admin)
):
    result = BlacklistService.add(db, user, data.name)
    return result_response(result, status_code=201)

@router.delete("/blacklist/{name}")
async def remove_from_blacklist(
    name: str,
    db: Optional[Session] = Depends(get_store_session),
    user: UserSnapshot = Depends(require_admin)
):
    result = BlacklistService.remove(db, user, name)
    return result_response(result)

@router.post("/migrate")
async def migrate_schema(user: UserSnapshot = Depends(require_admin)):
    """Rewrite legacy event and user records to the current schema"""
    try:
        counts = migrate_store()
    except (firebase_exceptions.FirebaseError, ValueError) as e:
        logger.error(f"Schema migration failed: {e}")
        service_unavailable_error("Migration failed. Please try again.")

    logger.info(f"{user.id} ran schema migration: {counts}")
    return success_response(
        message=f"Migrated records to schema version {CURRENT_SCHEMA_VERSION}",
        data=counts
    )
