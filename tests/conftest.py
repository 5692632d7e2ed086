"""
Shared fixtures for the guest list tests
"""

import pytest

from app.schemas.user import UserStatus
from tests.factories import RecordingWebSocketManager, build_user


@pytest.fixture
def member():
    return build_user("member-a")

@pytest.fixture
def admin():
    return build_user("admin-1", status=UserStatus.ADMIN)

@pytest.fixture
def social():
    return build_user("social-1", status=UserStatus.SOCIAL)

@pytest.fixture
def ws_manager():
    return RecordingWebSocketManager()
