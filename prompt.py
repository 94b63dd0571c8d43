"""Summary prompt builder and its time and text helpers.

Everything here is a pure function of its arguments, so prompts can be
asserted on directly in tests.
"""

from __future__ import annotations

from datetime import datetime

import pytz
from dateutil import parser as date_parser

from schemas import NormalizedEvent

MAX_DESCRIPTION_CHARS = 1500
MAX_DOCUMENT_CHARS = 3000
MAX_LISTED_ATTENDEES = 5


def parse_instant(value: str | datetime, timezone: str) -> datetime:
    """Parse an ISO timestamp into an aware datetime.

    Naive values (all-day events, Graph wall-clock times) are read as local
    time in ``timezone``.
    """
    parsed = value if isinstance(value, datetime) else date_parser.parse(value)
    if parsed.tzinfo is None:
        parsed = pytz.timezone(timezone).localize(parsed)
    return parsed


def format_local_time(value: str | datetime, timezone: str) -> str:
    """Render ``value`` as ``h:MM AM`` in ``timezone``."""
    local = parse_instant(value, timezone).astimezone(pytz.timezone(timezone))
    return f"{local.strftime('%I').lstrip('0')}:{local.strftime('%M %p')}"


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def build_summary_prompt(event: NormalizedEvent, timezone: str) -> str:
    start_time = format_local_time(event.starts_at, timezone)
    end_time = format_local_time(event.ends_at, timezone)

    attendee_count = len(event.attendees)
    top_attendees = ", ".join(
        a.name or a.email or "" for a in event.attendees[:MAX_LISTED_ATTENDEES]
    )
    more_attendees = (
        f", +{attendee_count - MAX_LISTED_ATTENDEES} more"
        if attendee_count > MAX_LISTED_ATTENDEES else ""
    )

    description = (
        truncate_text(event.description, MAX_DESCRIPTION_CHARS)
        if event.description else "No description provided"
    )

    organizer_name = (event.organizer and event.organizer.name) or "Unknown"
    organizer_email = (event.organizer and event.organizer.email) or "Unknown"
    location = event.location or event.html_link or "Not specified"

    document_blocks = [
        f"\n--- {att.title} ---\n{truncate_text(att.content, MAX_DOCUMENT_CHARS)}"
        for att in event.attachments or []
        if att.content and att.content.strip()
    ]
    document_section = (
        "\n\nDocument Content:" + "\n".join(document_blocks) if document_blocks else ""
    )
    document_hint = ". Include insights from attached documents" if document_blocks else ""

    return f"""Context:
- Title: {event.title}
- Time: {start_time}–{end_time} ({timezone})
- Organizer: {organizer_name} <{organizer_email}>
- Attendees ({attendee_count}): {top_attendees}{more_attendees}
- Location/Link: {location}
- Description/Agenda:
{description}{document_section}

Tasks:
1) Produce a crisp summary in 4–7 bullets focused on purpose, decisions, and outcomes{document_hint}.
2) Extract explicit action items as a JSON array of strings: ["Owner: Task — Due (if any)", ...]. Include action items from both meeting context and attached documents. If none, return [].
3) Provide a confidence score [0.0–1.0] based on clarity/amount of context.

Output JSON strictly as:
{{
  "summaryMd": "markdown bullets only",
  "actionItems": ["..."],
  "confidence": 0.0
}}"""
