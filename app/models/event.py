"""
Event model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from app.core.db import Base

class Event(Base):
    __tablename__ = "events"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    date = Column(String(32), nullable=False)
    type = Column(String(100), nullable=False)
    max_guests = Column(Integer, nullable=False)
    open = Column(Boolean, default=False, nullable=False)
    front_door_mode = Column(Boolean, default=False, nullable=False)
    jobs_url = Column(String(500), default="")
    # Bumped on every guest list write; writers compare-and-set on it
    version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    guests = relationship("Guest", back_populates="event", cascade="all, delete-orphan")
