"""
User-related Pydantic schemas
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError

from .guest import GuestEntry

logger = logging.getLogger(__name__)

class UserStatus(str, Enum):
    """Member roles in increasing order of privilege"""
    DEFAULT = "Default"
    SOCIAL = "Social"
    ADMIN = "Admin"

class UserSnapshot(BaseModel):
    """Immutable view of one member as read from the store"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    display_name: str = Field(default="", alias="displayName")
    email: str = ""
    approved: bool = False
    status: UserStatus = UserStatus.DEFAULT
    privileges: bool = False
    personal_guest_list: Dict[str, GuestEntry] = Field(default_factory=dict, alias="personalGuestList")

    @property
    def is_admin(self) -> bool:
        return self.status == UserStatus.ADMIN

    @property
    def is_staff(self) -> bool:
        """Admins and Social members run the waitlist and the events page"""
        return self.status in (UserStatus.ADMIN, UserStatus.SOCIAL)

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

class UserRegister(BaseModel):
    """First sign-in registration"""
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(alias="displayName")
    email: EmailStr

class UserProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(default=None, alias="displayName")
    email: Optional[EmailStr] = None

class StatusUpdate(BaseModel):
    status: UserStatus

class PrivilegesUpdate(BaseModel):
    privileges: bool


def validate_and_return_user(data: Any) -> Optional[UserSnapshot]:
    """Parse raw store data into a UserSnapshot, or None if it is malformed"""
    try:
        return UserSnapshot.model_validate(data)
    except ValidationError as e:
        logger.error(f"User data is unrecognized: {e}. Passed in data: {data!r}")
        return None
