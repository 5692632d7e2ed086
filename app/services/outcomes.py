"""
Decision outcomes and the store mutations they declare.

Every engine in this package is a pure function of its inputs. It answers with
either a ``Rejected`` value or a description of what to write (``Applied``,
``AdmitToMainList``, ``AdmitToWaitlist``); nothing here touches a store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Tuple, Union

from app.schemas.event import GuestListType
from app.schemas.guest import GuestEntry


class ErrorCode(str, Enum):
    EMPTY_NAME = "empty_name"
    CLOSED = "closed"
    NO_PRIVILEGES = "no_privileges"
    BLACKLISTED = "blacklisted"
    NOT_FOUND = "not_found"
    PERSISTENCE_FAILURE = "persistence_failure"
    FORBIDDEN = "forbidden"
    EVENT_OPEN = "event_open"
    FRONT_DOOR_OFF = "front_door_off"
    INVALID = "invalid"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class GuestMutation:
    """Write ``guest`` at ``<list_name>/<guest_id>``; ``guest=None`` removes the entry"""
    list_name: GuestListType
    guest_id: str
    guest: Optional[GuestEntry] = None

    @property
    def is_removal(self) -> bool:
        return self.guest is None

    def relative_path(self) -> str:
        return f"{self.list_name.value}/{self.guest_id}"


@dataclass(frozen=True)
class FieldUpdate:
    """Set a top-level field of the record (store name, e.g. ``frontDoorMode``)"""
    field: str
    value: Any

    def relative_path(self) -> str:
        return self.field


Mutation = Union[GuestMutation, FieldUpdate]


@dataclass(frozen=True)
class Rejected:
    reason: ErrorCode
    message: str

    ok: ClassVar[bool] = False


@dataclass(frozen=True)
class Applied:
    """A successful decision. An empty ``mutations`` tuple means nothing needs writing."""
    message: str
    mutations: Tuple[Mutation, ...] = ()
    data: dict = field(default_factory=dict)

    ok: ClassVar[bool] = True

    @property
    def is_noop(self) -> bool:
        return not self.mutations


@dataclass(frozen=True)
class AdmitToMainList:
    guest: GuestEntry

    ok: ClassVar[bool] = True
    list_name: ClassVar[GuestListType] = GuestListType.GUEST_LIST
    message: ClassVar[str] = "Added guest to guest list"

    def to_applied(self, guest_id: str) -> Applied:
        return Applied(
            message=self.message,
            mutations=(GuestMutation(self.list_name, guest_id, self.guest),),
            data={"guest_id": guest_id, "list": self.list_name.value},
        )


@dataclass(frozen=True)
class AdmitToWaitlist:
    guest: GuestEntry

    ok: ClassVar[bool] = True
    list_name: ClassVar[GuestListType] = GuestListType.WAIT_LIST
    message: ClassVar[str] = "Added guest to waitlist"

    def to_applied(self, guest_id: str) -> Applied:
        return Applied(
            message=self.message,
            mutations=(GuestMutation(self.list_name, guest_id, self.guest),),
            data={"guest_id": guest_id, "list": self.list_name.value},
        )


AdmissionOutcome = Union[Rejected, AdmitToMainList, AdmitToWaitlist]
Result = Union[Applied, Rejected]
