"""
Guest list export to CSV and Excel
"""

import io
from typing import Mapping

import pandas as pd

from app.schemas.event import EventSnapshot, GuestListType

EXPORT_COLUMNS = ["Guest Name", "Added By", "List", "Checked In"]
NOT_CHECKED_IN_LABEL = "Not Checked In"


class ExportService:
    """Service for exporting an event's lists"""

    @staticmethod
    def build_dataframe(
        event: EventSnapshot,
        display_names: Mapping[str, str],
        include_waitlist: bool = True,
    ) -> pd.DataFrame:
        """One row per guest, guest list first, each list sorted by name"""
        lists = [GuestListType.GUEST_LIST]
        if include_waitlist:
            lists.append(GuestListType.WAIT_LIST)

        rows = []
        for list_name in lists:
            for guest in sorted(event.guests(list_name).values(), key=lambda g: g.name.lower()):
                rows.append({
                    "Guest Name": guest.name,
                    "Added By": display_names.get(guest.added_by) or guest.added_by,
                    "List": list_name.label,
                    "Checked In": guest.checked_in if guest.is_checked_in else NOT_CHECKED_IN_LABEL,
                })

        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    @staticmethod
    def to_csv(df: pd.DataFrame) -> bytes:
        return df.to_csv(index=False).encode("utf-8")

    @staticmethod
    def to_excel(df: pd.DataFrame, sheet_name: str = "Guest List") -> bytes:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
        return buffer.getvalue()

    @staticmethod
    def filename(event: EventSnapshot, extension: str) -> str:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in event.name).strip("_") or event.id
        return f"{safe}_guest_list.{extension}"
