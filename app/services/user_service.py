"""
Member accounts: registration, profile, personal guest list and user administration
"""

import logging
from typing import List, Optional, Union

from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy.orm import Session

from app.schemas.event import GuestListType
from app.schemas.guest import GuestEntry
from app.schemas.user import UserProfileUpdate, UserRegister, UserSnapshot, UserStatus
from app.services.firebase_client import delete_auth_user
from app.services.outcomes import Applied, ErrorCode, FieldUpdate, GuestMutation, Mutation, Rejected, Result
from app.services.repositories import PersistenceError, UserRepo, new_record_id, use_firebase

logger = logging.getLogger(__name__)

USER_NOT_FOUND_MESSAGE = "User not found"


def load_user(db: Optional[Session], user_id: str) -> Union[UserSnapshot, Rejected]:
    try:
        user = UserRepo.get(db, user_id)
    except PersistenceError as e:
        logger.error(f"Error fetching user {user_id}: {e}")
        return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to load the user. Please try again.")
    if user is None:
        return Rejected(ErrorCode.NOT_FOUND, USER_NOT_FOUND_MESSAGE)
    return user


def _commit_user_changes(db: Optional[Session], user_id: str, result: Result) -> Result:
    if not result.ok or result.is_noop:
        return result
    try:
        UserRepo.apply(db, user_id, result.mutations)
    except PersistenceError as e:
        logger.error(f"Error updating user {user_id}: {e}")
        return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to save changes. Please try again.")
    return result


class UserService:
    """Self-service account operations"""

    @staticmethod
    def register(db: Optional[Session], user_id: str, data: UserRegister) -> Result:
        """Create the member record on first sign-in; returning members get their record back"""
        existing = load_user(db, user_id)
        if isinstance(existing, UserSnapshot):
            return Applied(message="User already registered", data=existing.to_store())
        if existing.reason != ErrorCode.NOT_FOUND:
            return existing

        display_name = data.display_name.strip()
        if not display_name:
            return Rejected(ErrorCode.INVALID, "Display name is required")

        user = UserSnapshot(id=user_id, display_name=display_name, email=data.email)
        try:
            user = UserRepo.create(db, user)
        except PersistenceError as e:
            logger.error(f"Error registering user {user_id}: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to register. Please try again.")

        logger.info(f"Registered user {user_id}, waiting for approval")
        return Applied(message="Registered. An admin needs to approve your account.", data=user.to_store())

    @staticmethod
    def update_profile(db: Optional[Session], user: UserSnapshot, data: UserProfileUpdate) -> Result:
        mutations: List[Mutation] = []
        if data.display_name is not None:
            display_name = data.display_name.strip()
            if not display_name:
                return Rejected(ErrorCode.INVALID, "Display name is required")
            mutations.append(FieldUpdate("displayName", display_name))
        if data.email is not None:
            mutations.append(FieldUpdate("email", str(data.email)))

        return _commit_user_changes(db, user.id, Applied(message="Profile updated", mutations=tuple(mutations)))

    @staticmethod
    def add_personal_guest(db: Optional[Session], user: UserSnapshot, name: str) -> Result:
        """Pre-stage a guest name for adding to events later"""
        name = (name or "").strip()
        if not name:
            return Rejected(ErrorCode.EMPTY_NAME, "Guest name cannot be empty.")

        guest_id = new_record_id()
        guest = GuestEntry(name=name, added_by=user.id)
        result = Applied(
            message="Added guest to personal guest list",
            mutations=(GuestMutation(GuestListType.PERSONAL, guest_id, guest),),
            data={"guest_id": guest_id, **guest.to_store()},
        )
        return _commit_user_changes(db, user.id, result)

    @staticmethod
    def remove_personal_guest(db: Optional[Session], user: UserSnapshot, guest_id: str) -> Result:
        if guest_id not in user.personal_guest_list:
            return Rejected(ErrorCode.NOT_FOUND, "Guest not found on the personal guest list.")

        result = Applied(
            message="Removed guest from personal guest list",
            mutations=(GuestMutation(GuestListType.PERSONAL, guest_id, None),),
            data={"guest_id": guest_id},
        )
        return _commit_user_changes(db, user.id, result)


class UserAdminService:
    """Member administration from the settings page"""

    @staticmethod
    def list_users(db: Optional[Session]) -> List[UserSnapshot]:
        return UserRepo.list(db)

    @staticmethod
    def approve_user(db: Optional[Session], actor: UserSnapshot, user_id: str) -> Result:
        if not actor.is_staff:
            return Rejected(ErrorCode.FORBIDDEN, "Only Admin or Social members can approve users.")

        target = load_user(db, user_id)
        if isinstance(target, Rejected):
            return target
        if target.approved:
            return Applied(message="User is already approved")

        logger.info(f"{actor.id} approved user {user_id}")
        return _commit_user_changes(
            db, user_id, Applied(message="User approved", mutations=(FieldUpdate("approved", True),))
        )

    @staticmethod
    def change_status(db: Optional[Session], actor: UserSnapshot, user_id: str, status: UserStatus) -> Result:
        if not actor.is_admin:
            return Rejected(ErrorCode.FORBIDDEN, "Only Admins can change a user's status.")

        target = load_user(db, user_id)
        if isinstance(target, Rejected):
            return target
        if not target.approved:
            return Rejected(ErrorCode.INVALID, "User must be approved to change status.")

        result = Applied(
            message="User status updated",
            mutations=(FieldUpdate("status", status.value),),
            data={"status": status.value},
        )
        return _commit_user_changes(db, user_id, result)

    @staticmethod
    def change_privileges(db: Optional[Session], actor: UserSnapshot, user_id: str, privileges: bool) -> Result:
        if not actor.is_admin:
            return Rejected(ErrorCode.FORBIDDEN, "Only Admins can change social privileges.")

        target = load_user(db, user_id)
        if isinstance(target, Rejected):
            return target
        if not target.approved:
            return Rejected(ErrorCode.INVALID, "User must be approved to change privileges.")

        result = Applied(
            message="User social privileges updated",
            mutations=(FieldUpdate("privileges", privileges),),
            data={"privileges": privileges},
        )
        return _commit_user_changes(db, user_id, result)

    @staticmethod
    def delete_user(db: Optional[Session], actor: UserSnapshot, user_id: str) -> Result:
        if not actor.is_admin:
            return Rejected(ErrorCode.FORBIDDEN, "Only Admins can delete users.")
        if actor.id == user_id:
            return Rejected(ErrorCode.FORBIDDEN, "You cannot delete your own account.")

        try:
            users = UserRepo.list(db)
        except PersistenceError as e:
            logger.error(f"Error listing users: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to delete user. Please try again.")
        if len(users) <= 1:
            return Rejected(ErrorCode.INVALID, "Cannot remove user, only 1 user in database")

        try:
            deleted = UserRepo.delete(db, user_id)
        except PersistenceError as e:
            logger.error(f"Error deleting user {user_id}: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to delete user. Please try again.")
        if not deleted:
            return Rejected(ErrorCode.NOT_FOUND, USER_NOT_FOUND_MESSAGE)

        if use_firebase():
            try:
                delete_auth_user(user_id)
            except firebase_exceptions.FirebaseError as e:
                logger.error(f"User {user_id} deleted but their sign-in account was not: {e}")

        logger.info(f"{actor.id} deleted user {user_id}")
        return Applied(message="Successfully deleted user", data={"user_id": user_id})
