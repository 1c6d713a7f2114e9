"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("LOG_FORMAT", "text")

from tests.utils.factories import (  # noqa: E402
    create_listing_row,
    create_message_row,
    create_profile_row,
    create_room_row,
)
from tests.utils.helpers import make_client  # noqa: E402


@pytest.fixture
def mock_supabase_client():
    """Supabase client whose table() returns a chainable query with no rows."""
    return make_client()


@pytest.fixture
def listing_rows():
    """Three published listing rows, newest first."""
    return [
        create_listing_row(created_at="2024-12-09T12:00:00+00:00", district="台北市信義區"),
        create_listing_row(created_at="2024-12-08T12:00:00+00:00", district="台北市大安區"),
        create_listing_row(created_at="2024-12-07T12:00:00+00:00", district="台北市信義區"),
    ]


@pytest.fixture
def buyer_profile_row():
    return create_profile_row(display_name="Buyer")


@pytest.fixture
def agent_profile_row():
    return create_profile_row(display_name="Agent")


@pytest.fixture
def room_row(buyer_profile_row, agent_profile_row):
    return create_room_row(buyer_id=buyer_profile_row["id"], agent_id=agent_profile_row["id"])


@pytest.fixture
def message_row(room_row):
    return create_message_row(room_id=room_row["id"], sender_id=room_row["agent_id"])


@pytest.fixture
def auth_user():
    user = MagicMock()
    user.id = "5f1d7c3a-0000-4000-8000-000000000001"
    user.email = "buyer@example.com"
    return user


@pytest.fixture
def auth_session(auth_user):
    session = MagicMock()
    session.user = auth_user
    return session
