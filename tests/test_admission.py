"""
Tests for the admission rules, vouching and removal
"""

import pytest
from datetime import datetime, timezone

from app.schemas.event import GuestListType
from app.schemas.user import UserStatus
from app.services.admission_service import (
    count_by_inviter,
    decide_admission,
    decide_removal,
    decide_vouch,
    remaining_quota,
)
from app.services.outcomes import AdmitToMainList, AdmitToWaitlist, Applied, ErrorCode, GuestMutation, Rejected
from tests.factories import build_event, build_user, guest

NO_BLACKLIST = frozenset()


def admit_in_sequence(event, inviter, names):
    """Admit names one after another, writing each main-list admission back into the event"""
    outcomes = []
    for i, name in enumerate(names):
        outcome = decide_admission(event, inviter, name, NO_BLACKLIST)
        outcomes.append(outcome)
        if isinstance(outcome, AdmitToMainList):
            event = event.model_copy(update={"guest_list": {**event.guest_list, f"g{i}": outcome.guest}})
        elif isinstance(outcome, AdmitToWaitlist):
            event = event.model_copy(update={"wait_list": {**event.wait_list, f"w{i}": outcome.guest}})
    return outcomes, event


@pytest.mark.parametrize("max_guests", [1, 2, 5, 10])
def test_quota_fills_main_list_then_waitlist(member, max_guests):
    """N admissions land on the guest list, the next one on the waitlist"""
    event = build_event(max_guests=max_guests)
    names = [f"Guest {i}" for i in range(max_guests + 1)]

    outcomes, _ = admit_in_sequence(event, member, names)

    assert all(isinstance(o, AdmitToMainList) for o in outcomes[:max_guests])
    assert isinstance(outcomes[max_guests], AdmitToWaitlist)

def test_alice_bob_carol_scenario(member):
    event = build_event(max_guests=2, open=True)

    outcomes, event = admit_in_sequence(event, member, ["Alice", "Bob", "Carol"])

    assert [type(o) for o in outcomes] == [AdmitToMainList, AdmitToMainList, AdmitToWaitlist]
    assert sorted(g.name for g in event.guest_list.values()) == ["Alice", "Bob"]
    assert [g.name for g in event.wait_list.values()] == ["Carol"]

def test_quota_counts_only_the_inviters_own_guests(member):
    event = build_event(max_guests=1, guest_list={"x": guest("Someone", added_by="member-b")})

    assert isinstance(decide_admission(event, member, "Alice", NO_BLACKLIST), AdmitToMainList)

def test_admins_are_not_capped(admin):
    guests = {f"g{i}": guest(f"Guest {i}", added_by=admin.id) for i in range(5)}
    event = build_event(max_guests=1, guest_list=guests)

    assert isinstance(decide_admission(event, admin, "One More", NO_BLACKLIST), AdmitToMainList)
    assert remaining_quota(event, admin) is None

def test_remaining_quota(member):
    event = build_event(max_guests=3, guest_list={"a": guest("Alice"), "b": guest("Bob")})

    assert count_by_inviter(event.guest_list, member.id) == 2
    assert remaining_quota(event, member) == 1

@pytest.mark.parametrize("open,front_door_mode,status", [
    (True, False, UserStatus.DEFAULT),
    (True, False, UserStatus.ADMIN),
    (True, True, UserStatus.DEFAULT),
    (False, True, UserStatus.ADMIN),
])
def test_blacklisted_regardless_of_quota_or_openness(open, front_door_mode, status):
    inviter = build_user("inviter", status=status)
    full = {f"g{i}": guest(f"Guest {i}", added_by="inviter") for i in range(3)}

    for guest_list in ({}, full):
        event = build_event(max_guests=3, open=open, front_door_mode=front_door_mode, guest_list=guest_list)
        outcome = decide_admission(event, inviter, "Dave", {"Dave"})
        assert isinstance(outcome, Rejected)
        assert outcome.reason == ErrorCode.BLACKLISTED

def test_blacklisted_dave_leaves_lists_unchanged(member):
    event = build_event(guest_list={"a": guest("Alice")})

    outcome = decide_admission(event, member, "Dave", {"Dave"})

    assert outcome == Rejected(ErrorCode.BLACKLISTED, outcome.message)
    assert list(event.guest_list) == ["a"]
    assert event.wait_list == {}

def test_blacklist_match_is_exact_on_trimmed_name(member):
    event = build_event()

    assert decide_admission(event, member, "  Dave  ", {"Dave"}).reason == ErrorCode.BLACKLISTED
    assert isinstance(decide_admission(event, member, "dave", {"Dave"}), AdmitToMainList)

@pytest.mark.parametrize("name", ["", " ", "\t", "   \n  "])
def test_empty_name_rejected_before_blacklist_and_quota(member, name):
    # blacklist contains the empty and whitespace forms, quota is exhausted
    event = build_event(max_guests=1, guest_list={"a": guest("Alice")})

    outcome = decide_admission(event, member, name, {"", name})

    assert outcome.reason == ErrorCode.EMPTY_NAME

def test_closed_event_admin_override_in_front_door_mode(admin, member):
    event = build_event(open=False, front_door_mode=True)

    assert isinstance(decide_admission(event, admin, "Eve", NO_BLACKLIST), AdmitToMainList)
    assert decide_admission(event, member, "Eve", NO_BLACKLIST).reason == ErrorCode.CLOSED

def test_closed_event_without_front_door_mode_rejects_admins(admin):
    event = build_event(open=False, front_door_mode=False)

    assert decide_admission(event, admin, "Eve", NO_BLACKLIST).reason == ErrorCode.CLOSED

def test_closed_checked_before_privileges():
    inviter = build_user("nobody", privileges=False)
    event = build_event(open=False)

    assert decide_admission(event, inviter, "Eve", NO_BLACKLIST).reason == ErrorCode.CLOSED

def test_no_privileges_checked_before_name():
    inviter = build_user("nobody", privileges=False)

    assert decide_admission(build_event(), inviter, "", NO_BLACKLIST).reason == ErrorCode.NO_PRIVILEGES

def test_admitted_guest_is_trimmed_and_not_checked_in(member):
    outcome = decide_admission(build_event(), member, "  Alice Smith ", NO_BLACKLIST)

    assert outcome.guest.name == "Alice Smith"
    assert outcome.guest.added_by == member.id
    assert not outcome.guest.is_checked_in

def test_admission_to_applied_declares_single_insert(member):
    outcome = decide_admission(build_event(max_guests=1, guest_list={"a": guest("Alice")}), member, "Bob", NO_BLACKLIST)

    applied = outcome.to_applied("new-id")

    assert applied.message == "Added guest to waitlist"
    assert applied.mutations == (GuestMutation(GuestListType.WAIT_LIST, "new-id", outcome.guest),)


# Vouching

NOW = datetime(2026, 10, 20, 1, 5, 3, tzinfo=timezone.utc)

def test_vouch_puts_guest_on_list_checked_in(admin):
    event = build_event(open=False, front_door_mode=True)

    result = decide_vouch(event, admin, " Walk In ", "secret", "secret", NO_BLACKLIST, "v1", now=NOW)

    assert isinstance(result, Applied)
    (mutation,) = result.mutations
    assert mutation.list_name == GuestListType.GUEST_LIST
    assert mutation.guest.name == "Walk In"
    assert mutation.guest.checked_in == "10/19/2026, 9:05:03 PM"

@pytest.mark.parametrize("actor_status,open,front_door_mode,password,name,blacklist,reason", [
    (UserStatus.SOCIAL, False, True, "secret", "Walk In", set(), ErrorCode.FORBIDDEN),
    (UserStatus.ADMIN, False, False, "secret", "Walk In", set(), ErrorCode.FRONT_DOOR_OFF),
    (UserStatus.ADMIN, True, True, "secret", "Walk In", set(), ErrorCode.FRONT_DOOR_OFF),
    (UserStatus.ADMIN, False, True, "wrong", "Walk In", set(), ErrorCode.FORBIDDEN),
    (UserStatus.ADMIN, False, True, "secr\u00e9t", "Walk In", set(), ErrorCode.FORBIDDEN),
    (UserStatus.ADMIN, False, True, "secret", "  ", set(), ErrorCode.EMPTY_NAME),
    (UserStatus.ADMIN, False, True, "secret", "Dave", {"Dave"}, ErrorCode.BLACKLISTED),
])
def test_vouch_rejections(actor_status, open, front_door_mode, password, name, blacklist, reason):
    actor = build_user("actor", status=actor_status)
    event = build_event(open=open, front_door_mode=front_door_mode)

    result = decide_vouch(event, actor, name, password, "secret", blacklist, "v1", now=NOW)

    assert result.reason == reason

def test_vouch_disabled_without_configured_password(admin):
    event = build_event(open=False, front_door_mode=True)

    result = decide_vouch(event, admin, "Walk In", "", "", NO_BLACKLIST, "v1", now=NOW)

    assert result.reason == ErrorCode.FORBIDDEN
    assert result.message == "Vouching is disabled until a vouch password is configured."


# Removal

def test_adder_can_remove_own_guest(member):
    event = build_event(guest_list={"a": guest("Alice")})

    result = decide_removal(event, member, GuestListType.GUEST_LIST, "a")

    assert result.mutations == (GuestMutation(GuestListType.GUEST_LIST, "a", None),)

def test_admin_can_remove_anyones_guest(admin):
    event = build_event(wait_list={"w": guest("Carol", added_by="member-b")})

    assert isinstance(decide_removal(event, admin, GuestListType.WAIT_LIST, "w"), Applied)

def test_other_members_cannot_remove(member):
    event = build_event(guest_list={"a": guest("Alice", added_by="member-b")})

    assert decide_removal(event, member, GuestListType.GUEST_LIST, "a").reason == ErrorCode.FORBIDDEN

def test_removal_of_unknown_guest(member):
    result = decide_removal(build_event(), member, GuestListType.WAIT_LIST, "nope")

    assert result.reason == ErrorCode.NOT_FOUND
    assert "waitlist" in result.message
