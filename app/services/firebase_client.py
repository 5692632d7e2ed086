"""
Firebase initialization and helpers
"""

from __future__ import annotations

import json
import random
import threading
import time
from functools import lru_cache
from typing import Any
import base64
import os

import firebase_admin
from firebase_admin import auth, credentials, db

from app.core.config import settings

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

_push_lock = threading.Lock()
_last_push_time = 0
_last_rand_chars: list[int] = [0] * 12


def _ensure_app() -> None:
    if firebase_admin._apps:
        return

    info: dict[str, Any] | None = None
    if settings.FIREBASE_CREDENTIALS_JSON:
        info = json.loads(settings.FIREBASE_CREDENTIALS_JSON)
    elif getattr(settings, "FIREBASE_CREDENTIALS_B64", None):
        decoded = base64.b64decode(settings.FIREBASE_CREDENTIALS_B64).decode("utf-8")
        info = json.loads(decoded)
    elif getattr(settings, "FIREBASE_CREDENTIALS_FILE", None) and os.path.exists(settings.FIREBASE_CREDENTIALS_FILE):
        with open(settings.FIREBASE_CREDENTIALS_FILE, "r", encoding="utf-8") as f:
            info = json.load(f)

    if not info:
        raise RuntimeError("Firebase credentials not provided. Set FIREBASE_CREDENTIALS_FILE, FIREBASE_CREDENTIALS_JSON, or FIREBASE_CREDENTIALS_B64")
    if not settings.FIREBASE_DATABASE_URL:
        raise RuntimeError("FIREBASE_DATABASE_URL must be set to use the Realtime Database")

    cred = credentials.Certificate(info)
    firebase_admin.initialize_app(cred, {"databaseURL": settings.FIREBASE_DATABASE_URL})


@lru_cache(maxsize=1)
def get_realtime_db():
    """Initialize Firebase and return a cached root reference of the Realtime Database.

    Returns None when Firebase is disabled. Expects credentials via one of:
    FIREBASE_CREDENTIALS_JSON, FIREBASE_CREDENTIALS_B64, FIREBASE_CREDENTIALS_FILE.
    """
    if not settings.USE_FIREBASE:
        return None

    _ensure_app()
    return db.reference("/")


def verify_id_token(token: str) -> str:
    """Verify a Firebase ID token and return the user's uid"""
    _ensure_app()
    decoded = auth.verify_id_token(token)
    return decoded["uid"]


def delete_auth_user(uid: str) -> None:
    """Remove the sign-in account that belongs to a deleted user record"""
    _ensure_app()
    try:
        auth.delete_user(uid)
    except auth.UserNotFoundError:
        pass


def generate_push_id() -> str:
    """Chronologically ordered 20 character key, same shape as the client SDK's push()"""
    global _last_push_time

    with _push_lock:
        now = int(time.time() * 1000)
        duplicate_time = now == _last_push_time
        _last_push_time = now

        time_chars = []
        for _ in range(8):
            time_chars.append(PUSH_CHARS[now % 64])
            now //= 64
        key = "".join(reversed(time_chars))

        if not duplicate_time:
            for i in range(12):
                _last_rand_chars[i] = random.randrange(64)
        else:
            # Same millisecond: increment the random part so keys stay ordered
            i = 11
            while i >= 0 and _last_rand_chars[i] == 63:
                _last_rand_chars[i] = 0
                i -= 1
            if i >= 0:
                _last_rand_chars[i] += 1

        return key + "".join(PUSH_CHARS[c] for c in _last_rand_chars)
