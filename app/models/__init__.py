"""
Database models package
"""

from .event import Event
from .guest import Guest
from .user import User
from .blacklist import BlacklistEntry

__all__ = ["Event", "Guest", "User", "BlacklistEntry"]
