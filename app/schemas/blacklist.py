"""
Blacklist Pydantic schemas
"""

from pydantic import BaseModel, ConfigDict, Field

class BlacklistedEntry(BaseModel):
    """A barred person; ``added_by`` is the staff member's display name"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    added_by: str = Field(default="", alias="addedBy")

class BlacklistAdd(BaseModel):
    name: str = ""
