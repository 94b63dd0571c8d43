"""Tests for the refresh-once-on-401 event fetch."""

from unittest.mock import MagicMock

import pytest

from calendars import fetch_events_with_refresh
from errors import AccessExpiredError, CalendarError, TokenRefreshError
from schemas import Provider


@pytest.fixture
def account():
    return MagicMock(access_token="old-token", refresh_token="refresh-1")


@pytest.fixture
def calendar():
    return MagicMock(provider=Provider.GOOGLE)


def test_success_needs_no_refresh(calendar, account):
    calendar.fetch_events.return_value = ["event"]
    save = MagicMock()
    assert fetch_events_with_refresh(calendar, account, "2024-01-15", "UTC", save) == ["event"]
    calendar.refresh_access_token.assert_not_called()
    save.assert_not_called()


def test_refreshes_and_retries_once(calendar, account):
    calendar.fetch_events.side_effect = [
        CalendarError("Google Calendar API error: 401 Unauthorized", status=401),
        ["event"],
    ]
    calendar.refresh_access_token.return_value = "new-token"
    save = MagicMock()

    events = fetch_events_with_refresh(calendar, account, "2024-01-15", "UTC", save)

    assert events == ["event"]
    calendar.refresh_access_token.assert_called_once_with("refresh-1")
    save.assert_called_once_with(account, "new-token")
    assert calendar.fetch_events.call_args_list[1].args == ("new-token", "2024-01-15", "UTC")


def test_non_auth_error_propagates(calendar, account):
    calendar.fetch_events.side_effect = CalendarError("Google Calendar API error: 500 boom")
    with pytest.raises(CalendarError, match="500") as exc:
        fetch_events_with_refresh(calendar, account, "2024-01-15", "UTC", MagicMock())
    assert not isinstance(exc.value, AccessExpiredError)
    calendar.refresh_access_token.assert_not_called()


def test_no_refresh_token_propagates_401(calendar):
    account = MagicMock(access_token="old", refresh_token=None)
    calendar.fetch_events.side_effect = CalendarError("Microsoft Graph API error: 401 nope")
    with pytest.raises(CalendarError) as exc:
        fetch_events_with_refresh(calendar, account, "2024-01-15", "UTC", MagicMock())
    assert not isinstance(exc.value, AccessExpiredError)


def test_refresh_failure_means_access_expired(calendar, account):
    calendar.fetch_events.side_effect = CalendarError("401 Unauthorized")
    calendar.refresh_access_token.side_effect = TokenRefreshError("Failed to refresh Google token")
    save = MagicMock()
    with pytest.raises(AccessExpiredError, match="sign in again"):
        fetch_events_with_refresh(calendar, account, "2024-01-15", "UTC", save)
    save.assert_not_called()


def test_retry_failure_is_not_retried_again(calendar, account):
    calendar.fetch_events.side_effect = [
        CalendarError("401 Unauthorized"),
        CalendarError("401 Unauthorized"),
    ]
    calendar.refresh_access_token.return_value = "new-token"
    with pytest.raises(AccessExpiredError):
        fetch_events_with_refresh(calendar, account, "2024-01-15", "UTC", MagicMock())
    assert calendar.fetch_events.call_count == 2
    calendar.refresh_access_token.assert_called_once()
