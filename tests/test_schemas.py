"""Tests for wire schema validation."""

import pytest
from pydantic import ValidationError

from schemas import NormalizedEvent, SettingsUpdate


def _event(starts_at, ends_at):
    return NormalizedEvent(
        id="e1", provider="google", title="Sync",
        starts_at=starts_at, ends_at=ends_at, attendees=[],
    )


def test_event_ending_before_start_rejected():
    with pytest.raises(ValidationError, match="endsAt must not be before startsAt"):
        _event("2024-01-15T18:00:00Z", "2024-01-15T17:00:00Z")


def test_event_instants_compared_across_offsets():
    # 09:30 in New York is 14:30 UTC
    assert _event("2024-01-15T14:00:00Z", "2024-01-15T09:30:00-05:00").ends_at
    with pytest.raises(ValidationError):
        _event("2024-01-15T15:00:00Z", "2024-01-15T09:30:00-05:00")


def test_zero_length_and_all_day_events_accepted():
    assert _event("2024-01-15T18:00:00Z", "2024-01-15T18:00:00Z")
    assert _event("2024-01-15T00:00:00", "2024-01-16T23:59:59")


def test_unparseable_instant_rejected():
    with pytest.raises(ValidationError):
        _event("soon", "2024-01-15T18:00:00Z")


def test_settings_camel_case_input():
    settings = SettingsUpdate.model_validate({"recapEmail": False, "slackUserId": "U1"})
    assert settings.recap_email is False
    assert settings.slack_user_id == "U1"
    assert settings.timezone is None
