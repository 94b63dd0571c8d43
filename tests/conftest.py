from unittest.mock import MagicMock

import pytest

from app import Services, create_app
from config import TestingConfig
from models import Account, User, db
from schemas import Provider

USER_EMAIL = "test@example.com"


@pytest.fixture
def services():
    google = MagicMock(provider=Provider.GOOGLE)
    microsoft = MagicMock(provider=Provider.MICROSOFT)
    return Services(
        calendars={Provider.GOOGLE: google, Provider.MICROSOFT: microsoft},
        generator=MagicMock(),
        documents=MagicMock(),
        mailer=None,
        slack=None,
    )


@pytest.fixture
def app(services):
    app = create_app(TestingConfig, services=services)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def user_id(app):
    with app.app_context():
        user = User(email=USER_EMAIL, name="Test User", timezone="America/Los_Angeles")
        user.accounts.append(
            Account(
                provider="google",
                provider_account_id="google-123",
                access_token="access-1",
                refresh_token="refresh-1",
            )
        )
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture
def client(app, user_id):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["user"] = {"email": USER_EMAIL, "name": "Test User"}
        sess["provider"] = "google"
    return client


def _google_event(**overrides):
    event = {
        "id": "google-event-1",
        "provider": "google",
        "title": "Team Standup",
        "description": "Daily team sync",
        "startsAt": "2024-01-15T18:00:00Z",
        "endsAt": "2024-01-15T18:30:00Z",
        "attendees": [
            {"name": "John Doe", "email": "john@example.com", "required": True},
        ],
        "organizer": {"name": "John Doe", "email": "john@example.com"},
        "location": "Conference Room A",
    }
    event.update(overrides)
    return event


@pytest.fixture
def event_payload():
    """Factory for a camelCase Google event body; keyword overrides replace keys."""
    return _google_event
