"""Calendar providers: fetch one day of events and normalize them."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

import pytz
import requests
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from documents import extract_document_links
from errors import AccessExpiredError, CalendarError, TokenRefreshError
from schemas import Attendee, NormalizedEvent, Organizer, Provider

logger = logging.getLogger(__name__)

MAX_EVENTS = 50
UNTITLED = "Untitled Event"

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GRAPH_CALENDAR_VIEW = "https://graph.microsoft.com/v1.0/me/calendarview"
MS_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
MS_SCOPES = "offline_access User.Read Calendars.Read"


def day_window(date: str, timezone: str) -> tuple[str, str]:
    """Return (time_min, time_max) UTC instants spanning ``date`` in ``timezone``.

    ``date`` is ``YYYY-MM-DD``; the window is local 00:00:00 to 23:59:59.
    """
    day = datetime.strptime(date, "%Y-%m-%d")
    tz = pytz.timezone(timezone)
    start = tz.localize(day)
    end = tz.localize(day + timedelta(hours=23, minutes=59, seconds=59))
    return _utc_iso(start), _utc_iso(end)


def _utc_iso(value: datetime) -> str:
    return value.astimezone(pytz.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_google_event(event: dict) -> NormalizedEvent:
    start = event.get("start", {})
    end = event.get("end", {})
    organizer = event.get("organizer")
    attachments = extract_document_links(
        event.get("description"), event.get("attachments")
    )
    return NormalizedEvent(
        id=event["id"],
        provider=Provider.GOOGLE,
        title=event.get("summary") or UNTITLED,
        description=event.get("description"),
        starts_at=start.get("dateTime") or f"{start.get('date')}T00:00:00",
        ends_at=end.get("dateTime") or f"{end.get('date')}T23:59:59",
        attendees=[
            Attendee(
                name=a.get("displayName"),
                email=a.get("email"),
                required=not a.get("optional", False),
            )
            for a in event.get("attendees", [])
        ],
        organizer=Organizer(
            name=organizer.get("displayName"), email=organizer.get("email")
        ) if organizer else None,
        location=event.get("location"),
        html_link=event.get("htmlLink"),
        attachments=attachments or None,
    )


def normalize_microsoft_event(event: dict) -> NormalizedEvent:
    description = (event.get("body") or {}).get("content") or event.get("bodyPreview")
    organizer = (event.get("organizer") or {}).get("emailAddress")
    attachments = extract_document_links(description)
    return NormalizedEvent(
        id=event["id"],
        provider=Provider.MICROSOFT,
        title=event.get("subject") or UNTITLED,
        description=description,
        starts_at=event["start"]["dateTime"],
        ends_at=event["end"]["dateTime"],
        attendees=[
            Attendee(
                name=a.get("emailAddress", {}).get("name"),
                email=a.get("emailAddress", {}).get("address"),
                required=a.get("type") == "required",
            )
            for a in event.get("attendees", [])
        ],
        organizer=Organizer(
            name=organizer.get("name"), email=organizer.get("address")
        ) if organizer else None,
        location=(event.get("location") or {}).get("displayName") or None,
        html_link=event.get("webLink"),
        attachments=attachments or None,
    )


class CalendarProvider:
    """One calendar backend. Subclasses are registered per ``Provider``."""

    provider: Provider

    def fetch_events(self, access_token: str, date: str, timezone: str) -> list[NormalizedEvent]:
        raise NotImplementedError

    def refresh_access_token(self, refresh_token: str) -> str:
        raise NotImplementedError


class GoogleCalendar(CalendarProvider):
    provider = Provider.GOOGLE

    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret

    def fetch_events(self, access_token, date, timezone):
        time_min, time_max = day_window(date, timezone)
        try:
            service = build(
                "calendar", "v3",
                credentials=Credentials(token=access_token),
                cache_discovery=False,
            )
            result = service.events().list(
                calendarId="primary",
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
                maxResults=MAX_EVENTS,
            ).execute()
        except HttpError as e:
            status = e.resp.status
            raise CalendarError(
                f"Google Calendar API error: {status} {e}", status=status
            ) from e
        except RefreshError as e:
            # the transport answers a 401 by refreshing a token-only credential
            raise CalendarError(
                f"Google Calendar API error: 401 Unauthorized ({e})", status=401
            ) from e
        except Exception as e:
            raise CalendarError(f"Google Calendar API error: {e}") from e

        return [normalize_google_event(event) for event in result.get("items", [])]

    def refresh_access_token(self, refresh_token):
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        try:
            creds.refresh(Request())
        except Exception as e:
            raise TokenRefreshError(f"Failed to refresh Google token: {e}") from e
        if not creds.token:
            raise TokenRefreshError("Failed to refresh Google token: no access token returned")
        return creds.token


class MicrosoftCalendar(CalendarProvider):
    provider = Provider.MICROSOFT

    def __init__(self, client_id: str, client_secret: str, tenant: str = "common", timeout: int = 30):
        self.client_id = client_id
        self.client_secret = client_secret
        self.tenant = tenant
        self.timeout = timeout

    def fetch_events(self, access_token, date, timezone):
        time_min, time_max = day_window(date, timezone)
        try:
            response = requests.get(
                GRAPH_CALENDAR_VIEW,
                params={
                    "startDateTime": time_min,
                    "endDateTime": time_max,
                    "$orderby": "start/dateTime",
                    "$top": str(MAX_EVENTS),
                },
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                    # returned dateTimes are wall-clock in this zone
                    "Prefer": f'outlook.timezone="{timezone}"',
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CalendarError(f"Microsoft Graph API error: {e}") from e

        if not response.ok:
            raise CalendarError(
                f"Microsoft Graph API error: {response.status_code} {response.text}",
                status=response.status_code,
            )

        return [normalize_microsoft_event(event) for event in response.json().get("value", [])]

    def refresh_access_token(self, refresh_token):
        try:
            response = requests.post(
                MS_TOKEN_URL.format(tenant=self.tenant),
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                    "scope": MS_SCOPES,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TokenRefreshError(f"Failed to refresh Microsoft token: {e}") from e

        if not response.ok:
            raise TokenRefreshError(
                f"Failed to refresh Microsoft token: {response.status_code}",
                status=response.status_code,
            )
        access_token = response.json().get("access_token")
        if not access_token:
            raise TokenRefreshError("Failed to refresh Microsoft token: no access token returned")
        return access_token


def build_calendar_providers(config) -> dict[Provider, CalendarProvider]:
    """Construct the provider handler table from app config."""
    return {
        Provider.GOOGLE: GoogleCalendar(
            config["GOOGLE_CLIENT_ID"], config["GOOGLE_CLIENT_SECRET"]
        ),
        Provider.MICROSOFT: MicrosoftCalendar(
            config["MS_CLIENT_ID"], config["MS_CLIENT_SECRET"], config.get("MS_TENANT_ID", "common")
        ),
    }


def fetch_events_with_refresh(
    calendar: CalendarProvider,
    account,
    date: str,
    timezone: str,
    save_token: Callable[[object, str], None],
) -> list[NormalizedEvent]:
    """Fetch events, refreshing the account's access token once on a 401.

    ``save_token(account, new_token)`` persists the refreshed token before the
    retry. Any failure after the refresh starts is reported as
    ``AccessExpiredError``; errors that are not authorization failures are
    re-raised unchanged.
    """
    try:
        return calendar.fetch_events(account.access_token, date, timezone)
    except CalendarError as e:
        if not (account.refresh_token and "401" in str(e)):
            raise
        logger.warning(f"Calendar fetch unauthorized, refreshing {calendar.provider.value} token")

    try:
        new_token = calendar.refresh_access_token(account.refresh_token)
        save_token(account, new_token)
        return calendar.fetch_events(new_token, date, timezone)
    except Exception as e:
        logger.error(f"Token refresh failed: {e}")
        raise AccessExpiredError(
            "Calendar access expired. Please sign in again."
        ) from e
