"""Tests for provider event normalization."""

import pytest

from calendars import day_window, normalize_google_event, normalize_microsoft_event
from schemas import Provider


def test_google_event_matches_expected_shape():
    event = normalize_google_event({
        "id": "evt-1",
        "summary": "Test Meeting",
        "start": {"dateTime": "2024-01-15T10:00:00Z"},
        "end": {"dateTime": "2024-01-15T11:00:00Z"},
        "attendees": [
            {"email": "test@example.com", "displayName": "Test User", "optional": False},
        ],
    })
    assert event.to_wire() == {
        "id": "evt-1",
        "provider": "google",
        "title": "Test Meeting",
        "startsAt": "2024-01-15T10:00:00Z",
        "endsAt": "2024-01-15T11:00:00Z",
        "attendees": [{"name": "Test User", "email": "test@example.com", "required": True}],
    }


def test_google_all_day_event():
    event = normalize_google_event({
        "id": "all-day",
        "summary": "Offsite",
        "start": {"date": "2024-01-15"},
        "end": {"date": "2024-01-15"},
    })
    assert event.starts_at == "2024-01-15T00:00:00"
    assert event.ends_at == "2024-01-15T23:59:59"


def test_google_missing_title():
    event = normalize_google_event({
        "id": "x",
        "start": {"dateTime": "2024-01-15T10:00:00Z"},
        "end": {"dateTime": "2024-01-15T11:00:00Z"},
    })
    assert event.title == "Untitled Event"
    assert event.attendees == []


def test_google_required_flag():
    event = normalize_google_event({
        "id": "x",
        "summary": "Review",
        "start": {"dateTime": "2024-01-15T10:00:00Z"},
        "end": {"dateTime": "2024-01-15T11:00:00Z"},
        "attendees": [
            {"email": "a@example.com"},
            {"email": "b@example.com", "optional": True},
        ],
    })
    assert [a.required for a in event.attendees] == [True, False]


def test_google_organizer_link_and_attachments():
    event = normalize_google_event({
        "id": "x",
        "summary": "Planning",
        "description": "Agenda: https://docs.google.com/document/d/abc123/edit",
        "start": {"dateTime": "2024-01-15T10:00:00Z"},
        "end": {"dateTime": "2024-01-15T11:00:00Z"},
        "organizer": {"email": "boss@example.com", "displayName": "Boss"},
        "location": "Room 1",
        "htmlLink": "https://calendar.google.com/event?eid=x",
        "attachments": [{
            "fileId": "sheet-1",
            "title": "Budget",
            "mimeType": "application/vnd.google-apps.spreadsheet",
            "fileUrl": "https://docs.google.com/spreadsheets/d/sheet-1",
        }],
    })
    assert event.organizer.name == "Boss"
    assert event.location == "Room 1"
    assert event.html_link == "https://calendar.google.com/event?eid=x"
    assert [(a.id, a.type) for a in event.attachments] == [("sheet-1", "sheet"), ("abc123", "doc")]


def test_microsoft_event():
    event = normalize_microsoft_event({
        "id": "ms-1",
        "subject": "Sync",
        "bodyPreview": "preview text",
        "body": {"content": "full body", "contentType": "text"},
        "start": {"dateTime": "2024-01-15T10:00:00.0000000", "timeZone": "UTC"},
        "end": {"dateTime": "2024-01-15T11:00:00.0000000", "timeZone": "UTC"},
        "attendees": [
            {"emailAddress": {"address": "a@example.com", "name": "A"}, "type": "required"},
            {"emailAddress": {"address": "b@example.com"}, "type": "optional"},
            {"emailAddress": {"address": "room@example.com"}, "type": "resource"},
        ],
        "organizer": {"emailAddress": {"address": "org@example.com", "name": "Org"}},
        "location": {"displayName": "Teams"},
        "webLink": "https://outlook.office.com/x",
    })
    assert event.provider is Provider.MICROSOFT
    assert event.title == "Sync"
    assert event.description == "full body"
    assert event.starts_at == "2024-01-15T10:00:00.0000000"
    assert [a.required for a in event.attendees] == [True, False, False]
    assert event.organizer.email == "org@example.com"
    assert event.location == "Teams"
    assert event.html_link == "https://outlook.office.com/x"
    assert event.attachments is None


def test_microsoft_falls_back_to_preview_and_untitled():
    event = normalize_microsoft_event({
        "id": "ms-2",
        "bodyPreview": "preview text",
        "start": {"dateTime": "2024-01-15T10:00:00"},
        "end": {"dateTime": "2024-01-15T11:00:00"},
    })
    assert event.title == "Untitled Event"
    assert event.description == "preview text"
    assert event.location is None


def test_day_window_uses_local_midnight():
    assert day_window("2024-01-15", "America/Los_Angeles") == (
        "2024-01-15T08:00:00Z",
        "2024-01-16T07:59:59Z",
    )


def test_day_window_utc():
    assert day_window("2024-07-01", "UTC") == ("2024-07-01T00:00:00Z", "2024-07-01T23:59:59Z")


def test_day_window_rejects_bad_date():
    with pytest.raises(ValueError):
        day_window("15/01/2024", "UTC")
