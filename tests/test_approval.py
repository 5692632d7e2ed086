"""
Tests for waitlist approval
"""

from app.schemas.event import GuestListType
from app.services.approval_service import approve
from app.services.outcomes import ErrorCode, GuestMutation
from tests.factories import build_event, build_user, guest


def apply_mutations(event, mutations):
    lists = {
        GuestListType.GUEST_LIST: dict(event.guest_list),
        GuestListType.WAIT_LIST: dict(event.wait_list),
    }
    for mutation in mutations:
        if mutation.is_removal:
            lists[mutation.list_name].pop(mutation.guest_id, None)
        else:
            lists[mutation.list_name][mutation.guest_id] = mutation.guest
    return event.model_copy(update={
        "guest_list": lists[GuestListType.GUEST_LIST],
        "wait_list": lists[GuestListType.WAIT_LIST],
    })


def test_approve_moves_guest_to_guest_list(social):
    carol = guest("Carol", added_by="member-a")
    event = build_event(wait_list={"w1": carol})

    result = approve(event, "w1", social, set(), "g-new")
    event = apply_mutations(event, result.mutations)

    assert "w1" not in event.wait_list
    assert event.guest_list["g-new"].name == "Carol"
    assert event.guest_list["g-new"].added_by == "member-a"

def test_approve_is_one_update_with_insert_and_removal(admin):
    carol = guest("Carol")
    event = build_event(wait_list={"w1": carol})

    result = approve(event, "w1", admin, set(), "g-new")

    assert result.mutations == (
        GuestMutation(GuestListType.GUEST_LIST, "g-new", carol),
        GuestMutation(GuestListType.WAIT_LIST, "w1", None),
    )

def test_approve_ignores_quota(admin):
    full = {f"g{i}": guest(f"Guest {i}") for i in range(2)}
    event = build_event(max_guests=2, guest_list=full, wait_list={"w1": guest("Carol")})

    assert approve(event, "w1", admin, set(), "g-new").ok

def test_default_members_cannot_approve(member):
    event = build_event(wait_list={"w1": guest("Carol")})

    assert approve(event, "w1", member, set(), "g-new").reason == ErrorCode.FORBIDDEN

def test_approve_missing_guest(admin):
    result = approve(build_event(), "gone", admin, set(), "g-new")

    assert result.reason == ErrorCode.NOT_FOUND
    assert result.message == "Failed to approve guest: guest does not exist. Please try again."

def test_approve_blacklisted_guest_leaves_state_unchanged(admin):
    event = build_event(wait_list={"w1": guest("Dave")})

    result = approve(event, "w1", admin, {"Dave"}, "g-new")

    assert result.reason == ErrorCode.BLACKLISTED
    assert list(event.wait_list) == ["w1"]
    assert event.guest_list == {}

def test_approver_status_comes_from_snapshot():
    approver = build_user("approver", privileges=False)
    event = build_event(wait_list={"w1": guest("Carol")})

    assert not approve(event, "w1", approver, set(), "g-new").ok
