"""
Blacklist filter and blacklist administration
"""

import logging
from typing import AbstractSet, List, Optional

from sqlalchemy.orm import Session

from app.schemas.blacklist import BlacklistedEntry
from app.schemas.user import UserSnapshot
from app.services.outcomes import Applied, ErrorCode, Rejected, Result
from app.services.repositories import BlacklistRepo, PersistenceError

logger = logging.getLogger(__name__)


def normalize_blacklist_name(name: str) -> str:
    """Form a name is stored in: surrounding whitespace trimmed, case kept"""
    return (name or "").strip()


def is_blacklisted(name: str, blacklist: AbstractSet[str]) -> bool:
    """Exact, case-sensitive membership test. Lookup does no normalization."""
    return name in blacklist


class BlacklistService:
    """Admin-facing blacklist operations"""

    @staticmethod
    def list_entries(db: Optional[Session]) -> List[BlacklistedEntry]:
        return BlacklistRepo.list_entries(db)

    @staticmethod
    def add(db: Optional[Session], actor: UserSnapshot, name: str) -> Result:
        if not actor.is_admin:
            return Rejected(ErrorCode.FORBIDDEN, "Only admins can manage the blacklist.")

        name = normalize_blacklist_name(name)
        if not name:
            return Rejected(ErrorCode.EMPTY_NAME, "Guest name is required.")

        entry = BlacklistedEntry(name=name, added_by=actor.display_name)
        try:
            BlacklistRepo.add(db, entry)
        except PersistenceError as e:
            logger.error(f"Error adding {name!r} to blacklist: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to add guest to the blacklist.")

        logger.info(f"{actor.id} blacklisted {name!r}")
        return Applied(message="Guest added to the blacklist.", data=entry.model_dump(by_alias=True))

    @staticmethod
    def remove(db: Optional[Session], actor: UserSnapshot, name: str) -> Result:
        if not actor.is_admin:
            return Rejected(ErrorCode.FORBIDDEN, "Only admins can manage the blacklist.")

        try:
            removed = BlacklistRepo.remove(db, name)
        except PersistenceError as e:
            logger.error(f"Error removing {name!r} from blacklist: {e}")
            return Rejected(ErrorCode.PERSISTENCE_FAILURE, "Failed to remove guest from the blacklist.")

        if not removed:
            return Rejected(ErrorCode.NOT_FOUND, "That name is not on the blacklist.")
        return Applied(message="Guest removed from the blacklist.")
