"""
Security utilities and authentication
"""

import logging
import time
from collections import defaultdict
from typing import Optional

from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.schemas.user import UserSnapshot
from app.services.firebase_client import verify_id_token
from app.services.repositories import PersistenceError, UserRepo, use_firebase

logger = logging.getLogger(__name__)

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer()

def resolve_user_id(token: Optional[str]) -> Optional[str]:
    """uid behind a bearer token, or None when it does not authenticate.

    With Firebase enabled the token is a Firebase ID token. Without it the token
    is taken as the uid itself, but only when AUTH_DEV_MODE is switched on.
    """
    if not token:
        return None

    if not use_firebase():
        if settings.AUTH_DEV_MODE:
            return token
        logger.warning("Rejected bearer token: Firebase is disabled and AUTH_DEV_MODE is off")
        return None

    try:
        return verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_exceptions.FirebaseError) as e:
        logger.warning(f"Rejected ID token: {e}")
        return None

def get_current_user_id(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """uid of the caller"""
    user_id = resolve_user_id(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token"
        )
    return user_id

def get_store_session(db: Session = Depends(get_db)) -> Optional[Session]:
    """SQL session for the request, or None when Firebase holds the data"""
    if use_firebase():
        return None
    return db

def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Optional[Session] = Depends(get_store_session)
) -> UserSnapshot:
    """The caller's member record; registration has to happen first"""
    try:
        user = UserRepo.get(db, user_id)
    except PersistenceError as e:
        logger.error(f"Error fetching user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to load your account. Please try again."
        )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not registered"
        )
    return user

def require_approved_user(user: UserSnapshot = Depends(get_current_user)) -> UserSnapshot:
    if not user.approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is waiting for approval"
        )
    return user

def require_staff(user: UserSnapshot = Depends(require_approved_user)) -> UserSnapshot:
    """Admin or Social member"""
    if not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or Social status required"
        )
    return user

def require_admin(user: UserSnapshot = Depends(require_approved_user)) -> UserSnapshot:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin status required"
        )
    return user

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    if len(rate_limiter[client_ip]) >= limit:
        return False

    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Reverse proxy headers first
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
