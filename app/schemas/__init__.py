"""
Pydantic schemas package
"""

from .common import *
from .guest import *
from .event import *
from .user import *
from .blacklist import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "NOT_CHECKED_IN",
    "GuestEntry",
    "GuestAddRequest",
    "VouchRequest",
    "PersonalGuestCreate",
    "FromPersonalRequest",
    "GuestListType",
    "EventSnapshot",
    "EventCreate",
    "EventUpdate",
    "OpenStateUpdate",
    "UserStatus",
    "UserSnapshot",
    "UserRegister",
    "UserProfileUpdate",
    "StatusUpdate",
    "PrivilegesUpdate",
    "BlacklistedEntry",
    "BlacklistAdd",
    "validate_and_return_guest",
    "validate_and_return_event",
    "validate_and_return_user",
]
