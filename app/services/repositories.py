"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Realtime Database).

Reads return validated snapshots; writes take the mutation values produced by
the decision engines. Event writes are conditional on the event ``version`` so
two clients deciding against the same snapshot cannot both commit.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set

from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import BlacklistEntry, Event, Guest, User
from app.schemas.blacklist import BlacklistedEntry
from app.schemas.event import EventSnapshot, GuestListType, validate_and_return_event
from app.schemas.guest import NOT_CHECKED_IN, GuestEntry
from app.schemas.user import UserSnapshot, validate_and_return_user
from app.services.firebase_client import generate_push_id, get_realtime_db
from app.services.migration_service import upgrade_event_payload, upgrade_user_payload
from app.services.outcomes import FieldUpdate, GuestMutation, Mutation

logger = logging.getLogger(__name__)

# Realtime Database keys cannot contain these
FORBIDDEN_KEY_CHARS = set(".$#[]/")

EVENT_FIELD_COLUMNS = {
    "name": "name",
    "date": "date",
    "type": "type",
    "maxGuests": "max_guests",
    "open": "open",
    "frontDoorMode": "front_door_mode",
    "jobsURL": "jobs_url",
}

USER_FIELD_COLUMNS = {
    "displayName": "display_name",
    "email": "email",
    "approved": "approved",
    "status": "status",
    "privileges": "privileges",
}


class PersistenceError(Exception):
    """The underlying store failed to read or write"""


class ConcurrentUpdateError(PersistenceError):
    """A conditional write lost against a concurrent writer"""


class RecordNotFoundError(PersistenceError):
    """The record addressed by a write does not exist"""


def use_firebase() -> bool:
    return settings.USE_FIREBASE is True


def new_record_id() -> str:
    """Fresh key for a new guest or event"""
    if use_firebase():
        return generate_push_id()
    return uuid.uuid4().hex


def _stored_checked_in(guest: GuestEntry) -> Optional[str]:
    if guest.checked_in == NOT_CHECKED_IN:
        return None
    return str(guest.checked_in)


def _guest_row_payload(row: Guest) -> Dict[str, Any]:
    return {
        "name": row.name,
        "addedBy": row.added_by,
        "checkedIn": row.checked_in if row.checked_in is not None else NOT_CHECKED_IN,
    }


def _write_guest_sql(db: Session, mutation: GuestMutation, event_id: str = None, user_id: str = None) -> None:
    existing = db.get(Guest, mutation.guest_id)

    if mutation.is_removal:
        if existing is not None:
            db.delete(existing)
        return

    guest = mutation.guest
    if existing is None:
        db.add(Guest(
            id=mutation.guest_id,
            event_id=event_id,
            user_id=user_id,
            list_name=mutation.list_name.value,
            name=guest.name,
            added_by=guest.added_by,
            checked_in=_stored_checked_in(guest),
        ))
    else:
        existing.list_name = mutation.list_name.value
        existing.name = guest.name
        existing.added_by = guest.added_by
        existing.checked_in = _stored_checked_in(guest)


def _apply_to_tree(tree: Dict[str, Any], mutations: Iterable[Mutation]) -> None:
    for mutation in mutations:
        if isinstance(mutation, FieldUpdate):
            tree[mutation.field] = mutation.value
            continue

        bucket = tree.get(mutation.list_name.value)
        bucket = dict(bucket) if isinstance(bucket, dict) else {}
        if mutation.is_removal:
            bucket.pop(mutation.guest_id, None)
        else:
            bucket[mutation.guest_id] = mutation.guest.to_store()
        tree[mutation.list_name.value] = bucket


def _fb_update_payload(mutations: Iterable[Mutation]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for mutation in mutations:
        if isinstance(mutation, FieldUpdate):
            payload[mutation.relative_path()] = mutation.value
        else:
            payload[mutation.relative_path()] = None if mutation.is_removal else mutation.guest.to_store()
    return payload


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get(db: Optional[Session], event_id: str) -> Optional[EventSnapshot]:
        if use_firebase():
            return EventRepo.get_fb(event_id)
        return EventRepo.get_sql(db, event_id)

    @staticmethod
    def list(db: Optional[Session]) -> List[EventSnapshot]:
        if use_firebase():
            return EventRepo.list_fb()
        return EventRepo.list_sql(db)

    @staticmethod
    def create(db: Optional[Session], payload: Dict[str, Any]) -> EventSnapshot:
        if use_firebase():
            return EventRepo.create_fb(payload)
        return EventRepo.create_sql(db, payload)

    @staticmethod
    def delete(db: Optional[Session], event_id: str) -> bool:
        if use_firebase():
            return EventRepo.delete_fb(event_id)
        return EventRepo.delete_sql(db, event_id)

    @staticmethod
    def apply(db: Optional[Session], event_id: str, expected_version: int, mutations: Iterable[Mutation]) -> int:
        """Apply all mutations atomically if the event is still at ``expected_version``.

        Returns the new version. Raises ConcurrentUpdateError when the version moved
        (or the event vanished) and PersistenceError when the store fails.
        """
        mutations = tuple(mutations)
        if use_firebase():
            return EventRepo.apply_fb(event_id, expected_version, mutations)
        return EventRepo.apply_sql(db, event_id, expected_version, mutations)

    # SQL shape: events row, guests rows keyed by list_name
    @staticmethod
    def _snapshot_from_row(event: Event) -> Optional[EventSnapshot]:
        data = {
            "id": event.id,
            "name": event.name,
            "date": event.date,
            "type": event.type,
            "maxGuests": event.max_guests,
            "open": event.open,
            "frontDoorMode": event.front_door_mode,
            "jobsURL": event.jobs_url or "",
            "version": event.version,
            "guestList": {},
            "waitList": {},
        }
        for row in event.guests:
            if row.list_name in data:
                data[row.list_name][row.id] = _guest_row_payload(row)
        return validate_and_return_event(data)

    @staticmethod
    def get_sql(db: Session, event_id: str) -> Optional[EventSnapshot]:
        try:
            event = db.query(Event).filter(Event.id == event_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        return EventRepo._snapshot_from_row(event) if event else None

    @staticmethod
    def list_sql(db: Session) -> List[EventSnapshot]:
        try:
            events = db.query(Event).order_by(Event.date).all()
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        snapshots = (EventRepo._snapshot_from_row(event) for event in events)
        return [s for s in snapshots if s is not None]

    @staticmethod
    def create_sql(db: Session, payload: Dict[str, Any]) -> EventSnapshot:
        event = Event(
            id=payload["id"],
            name=payload["name"],
            date=payload["date"],
            type=payload["type"],
            max_guests=payload["maxGuests"],
            open=payload.get("open", False),
            front_door_mode=payload.get("frontDoorMode", False),
            jobs_url=payload.get("jobsURL", ""),
            version=0,
        )
        try:
            db.add(event)
            db.commit()
            db.refresh(event)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e
        return EventRepo._snapshot_from_row(event)

    @staticmethod
    def delete_sql(db: Session, event_id: str) -> bool:
        try:
            event = db.get(Event, event_id)
            if event is None:
                return False
            db.delete(event)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e
        return True

    @staticmethod
    def apply_sql(db: Session, event_id: str, expected_version: int, mutations: tuple) -> int:
        values: Dict[str, Any] = {"version": Event.version + 1}
        for mutation in mutations:
            if isinstance(mutation, FieldUpdate):
                values[EVENT_FIELD_COLUMNS[mutation.field]] = mutation.value

        try:
            result = db.execute(
                update(Event)
                .where(Event.id == event_id, Event.version == expected_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                raise ConcurrentUpdateError(f"Event {event_id} changed since version {expected_version}")

            for mutation in mutations:
                if isinstance(mutation, GuestMutation):
                    _write_guest_sql(db, mutation, event_id=event_id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e

        db.expire_all()
        return expected_version + 1

    # Firebase shape: events/{id} node holding the whole event
    @staticmethod
    def _snapshot_from_tree(event_id: str, data: Any) -> Optional[EventSnapshot]:
        if not isinstance(data, dict):
            logger.error(f"Event {event_id} is not an object: {data!r}")
            return None
        data = upgrade_event_payload(data)
        data["id"] = event_id
        return validate_and_return_event(data)

    @staticmethod
    def get_fb(event_id: str) -> Optional[EventSnapshot]:
        root = get_realtime_db()
        try:
            data = root.child("events").child(event_id).get()
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        if data is None:
            return None
        return EventRepo._snapshot_from_tree(event_id, data)

    @staticmethod
    def list_fb() -> List[EventSnapshot]:
        root = get_realtime_db()
        try:
            data = root.child("events").get() or {}
        except firebase_exceptions.FirebaseError as e:
            raise PersistenceError(str(e)) from e
        snapshots = (EventRepo._snapshot_from_tree(event_id, raw) for event_id, raw in data.items())
        return sorted((s for s in snapshots if s is not None), key=lambda s: s.date)

    @staticmethod
    def create_fb(payload: Dict[str, Any]) -> EventSnapshot:
        root = get_realtime_db()
        payload = {**payload, "version": 0}
        try:
            root.child("events").child(payload["id"]).set(payload)
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        return EventRepo._snapshot_from_tree(payload["id"], dict(payload))

    @staticmethod
    def delete_fb(event_id: str) -> bool:
        ref = get_realtime_db().child("events").child(event_id)
        try:
            if ref.get(shallow=True) is None:
                return False
            ref.delete()
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        return True

    @staticmethod
    def apply_fb(event_id: str, expected_version: int, mutations: tuple) -> int:
        ref = get_realtime_db().child("events").child(event_id)

        def _update(current):
            if not isinstance(current, dict):
                raise ConcurrentUpdateError(f"Event {event_id} no longer exists")
            if current.get("version", 0) != expected_version:
                raise ConcurrentUpdateError(f"Event {event_id} changed since version {expected_version}")
            current = upgrade_event_payload(current)
            _apply_to_tree(current, mutations)
            current["version"] = expected_version + 1
            return current

        try:
            ref.transaction(_update)
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        return expected_version + 1


# -------- User repository --------

class UserRepo:
    @staticmethod
    def get(db: Optional[Session], user_id: str) -> Optional[UserSnapshot]:
        if use_firebase():
            return UserRepo.get_fb(user_id)
        return UserRepo.get_sql(db, user_id)

    @staticmethod
    def list(db: Optional[Session]) -> List[UserSnapshot]:
        if use_firebase():
            return UserRepo.list_fb()
        return UserRepo.list_sql(db)

    @staticmethod
    def create(db: Optional[Session], user: UserSnapshot) -> UserSnapshot:
        if use_firebase():
            return UserRepo.create_fb(user)
        return UserRepo.create_sql(db, user)

    @staticmethod
    def delete(db: Optional[Session], user_id: str) -> bool:
        if use_firebase():
            return UserRepo.delete_fb(user_id)
        return UserRepo.delete_sql(db, user_id)

    @staticmethod
    def apply(db: Optional[Session], user_id: str, mutations: Iterable[Mutation]) -> None:
        """Apply field updates and personal guest list changes to one user"""
        mutations = tuple(mutations)
        if use_firebase():
            return UserRepo.apply_fb(user_id, mutations)
        return UserRepo.apply_sql(db, user_id, mutations)

    @staticmethod
    def _snapshot_from_row(user: User) -> Optional[UserSnapshot]:
        data = {
            "id": user.id,
            "displayName": user.display_name,
            "email": user.email,
            "approved": user.approved,
            "status": user.status,
            "privileges": user.privileges,
            "personalGuestList": {row.id: _guest_row_payload(row) for row in user.personal_guests},
        }
        return validate_and_return_user(data)

    @staticmethod
    def get_sql(db: Session, user_id: str) -> Optional[UserSnapshot]:
        try:
            user = db.get(User, user_id)
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        return UserRepo._snapshot_from_row(user) if user else None

    @staticmethod
    def list_sql(db: Session) -> List[UserSnapshot]:
        try:
            users = db.query(User).order_by(User.display_name).all()
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        snapshots = (UserRepo._snapshot_from_row(user) for user in users)
        return [s for s in snapshots if s is not None]

    @staticmethod
    def create_sql(db: Session, user: UserSnapshot) -> UserSnapshot:
        row = User(
            id=user.id,
            display_name=user.display_name,
            email=user.email,
            approved=user.approved,
            status=user.status.value,
            privileges=user.privileges,
        )
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e
        return UserRepo._snapshot_from_row(row)

    @staticmethod
    def delete_sql(db: Session, user_id: str) -> bool:
        try:
            user = db.get(User, user_id)
            if user is None:
                return False
            db.delete(user)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e
        return True

    @staticmethod
    def apply_sql(db: Session, user_id: str, mutations: tuple) -> None:
        try:
            user = db.get(User, user_id)
            if user is None:
                raise RecordNotFoundError(f"User {user_id} does not exist")

            for mutation in mutations:
                if isinstance(mutation, FieldUpdate):
                    setattr(user, USER_FIELD_COLUMNS[mutation.field], mutation.value)
                else:
                    _write_guest_sql(db, mutation, user_id=user_id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e

        db.expire_all()

    @staticmethod
    def _snapshot_from_tree(user_id: str, data: Any) -> Optional[UserSnapshot]:
        if not isinstance(data, dict):
            logger.error(f"User {user_id} is not an object: {data!r}")
            return None
        data = upgrade_user_payload(data)
        data["id"] = user_id
        return validate_and_return_user(data)

    @staticmethod
    def get_fb(user_id: str) -> Optional[UserSnapshot]:
        try:
            data = get_realtime_db().child("users").child(user_id).get()
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        if data is None:
            return None
        return UserRepo._snapshot_from_tree(user_id, data)

    @staticmethod
    def list_fb() -> List[UserSnapshot]:
        try:
            data = get_realtime_db().child("users").get() or {}
        except firebase_exceptions.FirebaseError as e:
            raise PersistenceError(str(e)) from e
        snapshots = (UserRepo._snapshot_from_tree(user_id, raw) for user_id, raw in data.items())
        return sorted((s for s in snapshots if s is not None), key=lambda s: s.display_name)

    @staticmethod
    def create_fb(user: UserSnapshot) -> UserSnapshot:
        try:
            get_realtime_db().child("users").child(user.id).set(user.to_store())
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        return user

    @staticmethod
    def delete_fb(user_id: str) -> bool:
        ref = get_realtime_db().child("users").child(user_id)
        try:
            if ref.get(shallow=True) is None:
                return False
            ref.delete()
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        return True

    @staticmethod
    def apply_fb(user_id: str, mutations: tuple) -> None:
        ref = get_realtime_db().child("users").child(user_id)
        try:
            if ref.get(shallow=True) is None:
                raise RecordNotFoundError(f"User {user_id} does not exist")
            ref.update(_fb_update_payload(mutations))
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e


# -------- Blacklist repository --------

class BlacklistRepo:
    @staticmethod
    def names(db: Optional[Session]) -> Set[str]:
        return {entry.name for entry in BlacklistRepo.list_entries(db)}

    @staticmethod
    def list_entries(db: Optional[Session]) -> List[BlacklistedEntry]:
        if use_firebase():
            return BlacklistRepo.list_entries_fb()
        return BlacklistRepo.list_entries_sql(db)

    @staticmethod
    def add(db: Optional[Session], entry: BlacklistedEntry) -> None:
        if use_firebase():
            return BlacklistRepo.add_fb(entry)
        return BlacklistRepo.add_sql(db, entry)

    @staticmethod
    def remove(db: Optional[Session], name: str) -> bool:
        if use_firebase():
            return BlacklistRepo.remove_fb(name)
        return BlacklistRepo.remove_sql(db, name)

    @staticmethod
    def list_entries_sql(db: Session) -> List[BlacklistedEntry]:
        try:
            rows = db.query(BlacklistEntry).order_by(BlacklistEntry.name).all()
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        return [BlacklistedEntry(name=row.name, added_by=row.added_by) for row in rows]

    @staticmethod
    def add_sql(db: Session, entry: BlacklistedEntry) -> None:
        try:
            db.merge(BlacklistEntry(name=entry.name, added_by=entry.added_by))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e

    @staticmethod
    def remove_sql(db: Session, name: str) -> bool:
        try:
            row = db.get(BlacklistEntry, name)
            if row is None:
                return False
            db.delete(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e
        return True

    # Firebase shape: blacklist/{name} -> {name, addedBy}; older records hold ``true``
    @staticmethod
    def list_entries_fb() -> List[BlacklistedEntry]:
        try:
            data = get_realtime_db().child("blacklist").get() or {}
        except firebase_exceptions.FirebaseError as e:
            raise PersistenceError(str(e)) from e

        entries = []
        for name, value in data.items():
            added_by = value.get("addedBy", "") if isinstance(value, dict) else ""
            entries.append(BlacklistedEntry(name=name, added_by=added_by))
        return sorted(entries, key=lambda e: e.name)

    @staticmethod
    def add_fb(entry: BlacklistedEntry) -> None:
        if FORBIDDEN_KEY_CHARS & set(entry.name):
            raise PersistenceError(f"{entry.name!r} cannot be used as a blacklist key")
        try:
            get_realtime_db().child("blacklist").child(entry.name).set(entry.model_dump(by_alias=True))
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e

    @staticmethod
    def remove_fb(name: str) -> bool:
        if FORBIDDEN_KEY_CHARS & set(name):
            return False
        ref = get_realtime_db().child("blacklist").child(name)
        try:
            if ref.get(shallow=True) is None:
                return False
            ref.delete()
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise PersistenceError(str(e)) from e
        return True
