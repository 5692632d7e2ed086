"""
Waitlist approval
"""

from typing import AbstractSet

from app.schemas.event import EventSnapshot, GuestListType
from app.schemas.user import UserSnapshot
from app.services.blacklist_service import is_blacklisted
from app.services.outcomes import Applied, ErrorCode, GuestMutation, Rejected, Result


def approve(
    event: EventSnapshot,
    waitlist_guest_id: str,
    approver: UserSnapshot,
    blacklist: AbstractSet[str],
    new_guest_id: str,
) -> Result:
    """Move a waitlisted guest onto the guest list.

    The guest keeps its data but gets ``new_guest_id`` as its key on the guest
    list. The insert and the waitlist removal are returned together so the
    store can apply them as one update. The blacklist is checked again because
    a name can be barred after it was waitlisted.
    """
    if not approver.is_staff:
        return Rejected(ErrorCode.FORBIDDEN, "Only Admin or Social members can approve guests.")

    guest = event.wait_list.get(waitlist_guest_id)
    if guest is None:
        return Rejected(ErrorCode.NOT_FOUND, "Failed to approve guest: guest does not exist. Please try again.")

    if is_blacklisted(guest.name, blacklist):
        return Rejected(ErrorCode.BLACKLISTED, "This guest is blacklisted and cannot be approved.")

    return Applied(
        message="Approved guest from waitlist",
        mutations=(
            GuestMutation(GuestListType.GUEST_LIST, new_guest_id, guest),
            GuestMutation(GuestListType.WAIT_LIST, waitlist_guest_id, None),
        ),
        data={"guest_id": new_guest_id, "list": GuestListType.GUEST_LIST.value},
    )
