"""
Versioned migration of stored payloads to the unified guest list schema.

Schema version 1 kept parallel gender-partitioned lists on events
(``maleGuestList``, ``femaleGuestList``, ``maleWaitList``, ``femaleWaitList``
with ``maxMales``/``maxFemales`` sub-quotas) and on users
(``malePersonalGuestList``, ``femalePersonalGuestList``), and some records
stored guests as arrays instead of id-keyed objects. Version 2 has a single
``guestList``, ``waitList`` and ``personalGuestList``, each keyed by guest id.

New code only ever reads and writes version 2; version 1 payloads are
upgraded at the store boundary and can be rewritten in place with
``migrate_store``.
"""

import logging
from typing import Any, Dict

from app.services.firebase_client import get_realtime_db

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2

LEGACY_EVENT_LISTS = {
    "maleGuestList": "guestList",
    "femaleGuestList": "guestList",
    "maleWaitList": "waitList",
    "femaleWaitList": "waitList",
}
LEGACY_EVENT_QUOTAS = ("maxMales", "maxFemales")
LEGACY_USER_LISTS = ("malePersonalGuestList", "femalePersonalGuestList")

# Quota given to legacy events that had no usable sub-quotas; an Admin edits it afterwards
FALLBACK_MAX_GUESTS = 1


def _as_id_keyed(guests: Any, prefix: str) -> Dict[str, Any]:
    """Array-indexed lists get stable ``<prefix>-<index>`` ids; holes are dropped"""
    if isinstance(guests, list):
        return {f"{prefix}-{i}": guest for i, guest in enumerate(guests) if guest is not None}
    if isinstance(guests, dict):
        return dict(guests)
    return {}


def _merge_into(target: Dict[str, Any], entries: Dict[str, Any], source: str) -> None:
    for guest_id, guest in entries.items():
        key = guest_id if guest_id not in target else f"{source}-{guest_id}"
        target[key] = guest


def is_legacy_event(raw: Dict[str, Any]) -> bool:
    return (
        any(key in raw for key in LEGACY_EVENT_LISTS)
        or any(key in raw for key in LEGACY_EVENT_QUOTAS)
        or isinstance(raw.get("guestList"), list)
        or isinstance(raw.get("waitList"), list)
    )


def is_legacy_user(raw: Dict[str, Any]) -> bool:
    return any(key in raw for key in LEGACY_USER_LISTS) or isinstance(raw.get("personalGuestList"), list)


def upgrade_event_payload(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``raw`` in schema version 2. Version 2 payloads come back unchanged."""
    if not isinstance(raw, dict) or not is_legacy_event(raw):
        return raw

    upgraded = {
        key: value for key, value in raw.items()
        if key not in LEGACY_EVENT_LISTS and key not in LEGACY_EVENT_QUOTAS
    }
    lists = {
        "guestList": _as_id_keyed(raw.get("guestList"), "guest"),
        "waitList": _as_id_keyed(raw.get("waitList"), "wait"),
    }
    for legacy_key, target in LEGACY_EVENT_LISTS.items():
        _merge_into(lists[target], _as_id_keyed(raw.get(legacy_key), legacy_key), legacy_key)
    upgraded.update(lists)

    if "maxGuests" not in upgraded:
        max_guests = sum(int(raw.get(key) or 0) for key in LEGACY_EVENT_QUOTAS)
        if max_guests <= 0:
            logger.warning(
                f"Legacy event {raw.get('name')!r} has no usable maxMales/maxFemales; "
                f"setting maxGuests to {FALLBACK_MAX_GUESTS}"
            )
            max_guests = FALLBACK_MAX_GUESTS
        upgraded["maxGuests"] = max_guests
    upgraded["schemaVersion"] = CURRENT_SCHEMA_VERSION
    return upgraded


def upgrade_user_payload(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``raw`` in schema version 2. Version 2 payloads come back unchanged."""
    if not isinstance(raw, dict) or not is_legacy_user(raw):
        return raw

    upgraded = {key: value for key, value in raw.items() if key not in LEGACY_USER_LISTS}
    personal = _as_id_keyed(raw.get("personalGuestList"), "personal")
    for legacy_key in LEGACY_USER_LISTS:
        _merge_into(personal, _as_id_keyed(raw.get(legacy_key), legacy_key), legacy_key)
    upgraded["personalGuestList"] = personal
    upgraded["schemaVersion"] = CURRENT_SCHEMA_VERSION
    return upgraded


def migrate_store() -> Dict[str, int]:
    """Rewrite every legacy event and user record in the Realtime Database.

    The SQL backend only has the version 2 layout, so there is nothing to do there.
    """
    root = get_realtime_db()
    counts = {"events": 0, "users": 0}
    if root is None:
        return counts

    for collection, is_legacy, upgrade in (
        ("events", is_legacy_event, upgrade_event_payload),
        ("users", is_legacy_user, upgrade_user_payload),
    ):
        records = root.child(collection).get() or {}
        for record_id, raw in records.items():
            if isinstance(raw, dict) and is_legacy(raw):
                root.child(collection).child(record_id).set(upgrade(raw))
                counts[collection] += 1
                logger.info(f"Migrated {collection}/{record_id} to schema version {CURRENT_SCHEMA_VERSION}")

    return counts
