"""
Tests for the check-in state machine and front door mode
"""

import pytest
from datetime import datetime, timezone

from app.schemas.event import GuestListType
from app.schemas.guest import NOT_CHECKED_IN
from app.services.checkin_service import check_in, toggle_front_door_mode, uncheck_in
from app.services.outcomes import Applied, ErrorCode, FieldUpdate
from app.utils.timestamps import checkin_timestamp, parse_checkin_timestamp
from tests.factories import build_event, guest

NOW = datetime(2026, 10, 20, 1, 5, 3, tzinfo=timezone.utc)
LATER = datetime(2026, 10, 20, 2, 30, 0, tzinfo=timezone.utc)


def apply_guest_mutation(event, result):
    (mutation,) = result.mutations
    return event.model_copy(update={"guest_list": {**event.guest_list, mutation.guest_id: mutation.guest}})


@pytest.fixture
def door_event():
    return build_event(open=False, front_door_mode=True, guest_list={"x": guest("Guest X")})


def test_checkin_then_uncheckin_round_trip(admin, door_event):
    result = check_in(door_event, "x", admin, now=NOW)
    assert isinstance(result, Applied)
    event = apply_guest_mutation(door_event, result)
    assert event.guest_list["x"].checked_in == "10/19/2026, 9:05:03 PM"
    assert event.guest_list["x"].is_checked_in

    result = uncheck_in(event, "x", admin)
    event = apply_guest_mutation(event, result)
    assert event.guest_list["x"].checked_in == NOT_CHECKED_IN
    assert not event.guest_list["x"].is_checked_in

def test_second_checkin_is_a_noop(admin, door_event):
    event = apply_guest_mutation(door_event, check_in(door_event, "x", admin, now=NOW))

    again = check_in(event, "x", admin, now=LATER)

    assert isinstance(again, Applied)
    assert again.is_noop
    assert again.data["checkedIn"] == "10/19/2026, 9:05:03 PM"

def test_uncheckin_of_guest_not_checked_in_is_a_noop(admin, door_event):
    result = uncheck_in(door_event, "x", admin)

    assert result.ok and result.is_noop

def test_checkin_keeps_guest_fields(admin, door_event):
    (mutation,) = check_in(door_event, "x", admin, now=NOW).mutations

    assert mutation.list_name == GuestListType.GUEST_LIST
    assert mutation.guest.name == "Guest X"
    assert mutation.guest.added_by == "member-a"

def test_only_admins_check_in(social, door_event):
    assert check_in(door_event, "x", social, now=NOW).reason == ErrorCode.FORBIDDEN
    assert uncheck_in(door_event, "x", social).reason == ErrorCode.FORBIDDEN

def test_checkin_needs_front_door_mode(admin):
    event = build_event(open=False, front_door_mode=False, guest_list={"x": guest("Guest X")})

    assert check_in(event, "x", admin, now=NOW).reason == ErrorCode.FRONT_DOOR_OFF

def test_checkin_of_waitlisted_or_unknown_guest(admin):
    event = build_event(open=False, front_door_mode=True, wait_list={"w": guest("Carol")})

    assert check_in(event, "w", admin, now=NOW).reason == ErrorCode.NOT_FOUND
    assert check_in(event, "nope", admin, now=NOW).reason == ErrorCode.NOT_FOUND

def test_toggle_front_door_mode_on_closed_event(admin):
    event = build_event(open=False, front_door_mode=False)

    result = toggle_front_door_mode(event, admin)

    assert result.mutations == (FieldUpdate("frontDoorMode", True),)

def test_toggle_front_door_mode_rejected_while_open(admin):
    result = toggle_front_door_mode(build_event(open=True), admin)

    assert result.reason == ErrorCode.EVENT_OPEN
    assert result.message == "List must be closed to use front door mode"

def test_toggle_front_door_mode_admin_only(social):
    assert toggle_front_door_mode(build_event(open=False), social).reason == ErrorCode.FORBIDDEN


@pytest.mark.parametrize("now,tz_name,expected", [
    (datetime(2026, 1, 5, 17, 0, 9, tzinfo=timezone.utc), "America/New_York", "1/5/2026, 12:00:09 PM"),
    (datetime(2026, 7, 4, 4, 30, 0, tzinfo=timezone.utc), "America/New_York", "7/4/2026, 12:30:00 AM"),
    (datetime(2026, 12, 31, 23, 59, 59), "UTC", "12/31/2026, 11:59:59 PM"),
])
def test_checkin_timestamp_format(now, tz_name, expected):
    assert checkin_timestamp(now, tz_name) == expected

def test_parse_checkin_timestamp():
    parsed = parse_checkin_timestamp("10/19/2026, 9:05:03 PM")

    assert (parsed.hour, parsed.minute, parsed.second) == (21, 5, 3)
    assert parse_checkin_timestamp(NOT_CHECKED_IN) is None
    assert parse_checkin_timestamp("yesterday") is None

@pytest.mark.parametrize("value", [
    "10/19/2026, 9:05:03\u202fPM",
    "10/19/2026,\xa09:05:03\xa0PM",
])
def test_parse_checkin_timestamp_with_locale_spaces(value):
    parsed = parse_checkin_timestamp(value)

    assert (parsed.hour, parsed.minute, parsed.second) == (21, 5, 3)
