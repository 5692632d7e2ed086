"""
Guest-related Pydantic schemas
"""

import logging
from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Stored in ``checkedIn`` until the guest arrives
NOT_CHECKED_IN = -1

class GuestEntry(BaseModel):
    """A guest as stored under guestList, waitList or personalGuestList"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    added_by: str = Field(alias="addedBy")
    checked_in: Union[int, str] = Field(default=NOT_CHECKED_IN, alias="checkedIn")

    @property
    def is_checked_in(self) -> bool:
        return self.checked_in != NOT_CHECKED_IN

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True)

class GuestAddRequest(BaseModel):
    """Add a guest to an event by name"""
    name: str = ""

class VouchRequest(BaseModel):
    """Admin vouch at the front door"""
    name: str = ""
    password: str = ""

class PersonalGuestCreate(BaseModel):
    """Pre-stage a guest on the caller's personal list"""
    name: str = ""

class FromPersonalRequest(BaseModel):
    """Add an entry of the caller's personal list to an event"""
    guest_id: str


def validate_and_return_guest(data: Any) -> Optional[GuestEntry]:
    """Parse raw store data into a GuestEntry, or None if it is malformed"""
    try:
        return GuestEntry.model_validate(data)
    except ValidationError as e:
        logger.error(f"Guest data is unrecognized: {e}. Passed in data: {data!r}")
        return None
