"""
Event-related Pydantic schemas
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .guest import GuestEntry

logger = logging.getLogger(__name__)

class GuestListType(str, Enum):
    """Store names of the guest mappings"""
    GUEST_LIST = "guestList"
    WAIT_LIST = "waitList"
    PERSONAL = "personalGuestList"

    @property
    def label(self) -> str:
        return {
            GuestListType.GUEST_LIST: "guest list",
            GuestListType.WAIT_LIST: "waitlist",
            GuestListType.PERSONAL: "personal guest list",
        }[self]

class EventSnapshot(BaseModel):
    """Immutable view of one event as read from the store"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    date: str
    type: str
    max_guests: int = Field(gt=0, alias="maxGuests")
    open: bool
    front_door_mode: bool = Field(default=False, alias="frontDoorMode")
    jobs_url: str = Field(default="", alias="jobsURL")
    guest_list: Dict[str, GuestEntry] = Field(default_factory=dict, alias="guestList")
    wait_list: Dict[str, GuestEntry] = Field(default_factory=dict, alias="waitList")
    version: int = 0

    def guests(self, list_name: GuestListType) -> Dict[str, GuestEntry]:
        if list_name == GuestListType.GUEST_LIST:
            return self.guest_list
        if list_name == GuestListType.WAIT_LIST:
            return self.wait_list
        raise ValueError(f"Events have no {list_name.value}")

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True)

class EventCreate(BaseModel):
    """Schema for creating an event"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    date: str = ""
    type: str = ""
    max_guests: int = Field(default=0, alias="maxGuests")
    jobs_url: str = Field(default="", alias="jobsURL")

class EventUpdate(BaseModel):
    """Schema for editing an event; omitted fields are left alone"""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    date: Optional[str] = None
    type: Optional[str] = None
    max_guests: Optional[int] = Field(default=None, alias="maxGuests")
    jobs_url: Optional[str] = Field(default=None, alias="jobsURL")

class OpenStateUpdate(BaseModel):
    """Open or close an event's list"""
    open: bool


def validate_and_return_event(data: Any) -> Optional[EventSnapshot]:
    """Parse raw store data into an EventSnapshot, or None if it is malformed"""
    try:
        return EventSnapshot.model_validate(data)
    except ValidationError as e:
        logger.error(f"Event data is unrecognized: {e}. Passed in data: {data!r}")
        return None
