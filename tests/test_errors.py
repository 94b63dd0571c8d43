"""Tests for the exception hierarchy."""

import pytest

from errors import (
    AccessExpiredError, CalendarError, ConfigError, DayBriefError, DocumentFetchError,
    LLMError, RecapDeliveryError, TokenRefreshError
)


@pytest.mark.parametrize("cls", [
    ConfigError, CalendarError, TokenRefreshError, AccessExpiredError,
    DocumentFetchError, LLMError, RecapDeliveryError,
])
def test_all_errors_share_base(cls):
    assert issubclass(cls, DayBriefError)


def test_calendar_error_keeps_status():
    error = CalendarError("Google Calendar API error: 401 Unauthorized", status=401)
    assert error.status == 401
    assert "401" in str(error)
    assert CalendarError("boom").status is None


def test_refresh_errors_are_calendar_errors():
    assert issubclass(TokenRefreshError, CalendarError)
    assert issubclass(AccessExpiredError, CalendarError)
