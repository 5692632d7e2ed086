"""
Guest model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Guest(Base):
    """One entry of an event guest list, event waitlist or a user's personal list.

    Exactly one of ``event_id`` / ``user_id`` is set, and ``list_name`` holds the
    store name of the list (guestList, waitList or personalGuestList).
    """
    __tablename__ = "guests"

    id = Column(String(64), primary_key=True, index=True)
    event_id = Column(String(64), ForeignKey("events.id"), nullable=True, index=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=True, index=True)
    list_name = Column(String(32), nullable=False)
    name = Column(String(255), nullable=False)
    added_by = Column(String(128), nullable=False)
    checked_in = Column(String(64), nullable=True)  # NULL until checked in
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    event = relationship("Event", back_populates="guests")
    user = relationship("User", back_populates="personal_guests")
