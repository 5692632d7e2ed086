"""
Tests for event statistics and guest list export
"""

import io

import pandas as pd

from app.services.export_service import EXPORT_COLUMNS, ExportService
from app.services.stats_service import NO_TOP_INVITER, checkin_histogram, compute_event_stats, top_inviter
from tests.factories import build_event, guest

DISPLAY_NAMES = {"u1": "Member One", "u2": "Member Two"}


def sample_event():
    return build_event(
        max_guests=5,
        guest_list={
            "a": guest("Alice", added_by="u1", checked_in="10/19/2026, 10:15:20 PM"),
            "b": guest("bob", added_by="u2", checked_in="10/19/2026, 10:15:45 PM"),
            "c": guest("Carol", added_by="u2", checked_in="10/19/2026, 11:30:00 PM"),
            "d": guest("Dan", added_by="u1"),
        },
        wait_list={"w": guest("Wendy", added_by="u3")},
    )


def test_compute_event_stats():
    stats = compute_event_stats(sample_event(), DISPLAY_NAMES)

    assert stats["total_guests"] == 4
    assert stats["waitlist_count"] == 1
    assert stats["checked_in"] == 3
    assert stats["not_checked_in"] == 1
    assert stats["checkin_percentage"] == 75.0
    assert stats["top_inviter"] == "Member Two"

def test_stats_of_empty_event():
    stats = compute_event_stats(build_event(), DISPLAY_NAMES)

    assert stats["checkin_percentage"] == 0.0
    assert stats["top_inviter"] == NO_TOP_INVITER
    assert stats["checkin_histogram"] == []

def test_top_inviter_falls_back_to_uid():
    event = build_event(guest_list={"a": guest("Alice", added_by="ghost", checked_in="10/19/2026, 10:15:20 PM")})

    assert top_inviter(event, DISPLAY_NAMES) == "ghost"

def test_checkin_histogram_buckets_by_minute():
    points = checkin_histogram(sample_event())

    assert points == [{"x": 22 + 15 / 60, "y": 2}, {"x": 23.5, "y": 1}]

def test_export_dataframe_rows():
    df = ExportService.build_dataframe(sample_event(), DISPLAY_NAMES)

    assert list(df.columns) == EXPORT_COLUMNS
    assert list(df["Guest Name"]) == ["Alice", "bob", "Carol", "Dan", "Wendy"]
    assert list(df["List"]) == ["guest list"] * 4 + ["waitlist"]
    assert df.loc[df["Guest Name"] == "Dan", "Checked In"].item() == "Not Checked In"
    assert df.loc[df["Guest Name"] == "Wendy", "Added By"].item() == "u3"

def test_export_without_waitlist():
    df = ExportService.build_dataframe(sample_event(), DISPLAY_NAMES, include_waitlist=False)

    assert "Wendy" not in set(df["Guest Name"])

def test_excel_export_reads_back():
    df = ExportService.build_dataframe(sample_event(), DISPLAY_NAMES)

    content = ExportService.to_excel(df)
    read_back = pd.read_excel(io.BytesIO(content), sheet_name="Guest List")

    assert list(read_back.columns) == EXPORT_COLUMNS
    assert len(read_back) == 5

def test_export_of_empty_event_keeps_header():
    csv_text = ExportService.to_csv(ExportService.build_dataframe(build_event(), DISPLAY_NAMES)).decode("utf-8")

    assert csv_text.strip() == "Guest Name,Added By,List,Checked In"

def test_export_filename():
    assert ExportService.filename(build_event(), "xlsx") == "Spring_Social_guest_list.xlsx"
