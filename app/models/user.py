"""
User model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from app.core.db import Base

class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True, index=True)
    display_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    approved = Column(Boolean, default=False, nullable=False)
    status = Column(String(16), default="Default", nullable=False)
    privileges = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    personal_guests = relationship("Guest", back_populates="user", cascade="all, delete-orphan")
