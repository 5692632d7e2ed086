"""
Blacklist model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime

from app.core.db import Base

class BlacklistEntry(Base):
    __tablename__ = "blacklist"

    name = Column(String(255), primary_key=True)
    added_by = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
