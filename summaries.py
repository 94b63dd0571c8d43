"""Summary persistence and the summarize-an-event pipeline."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Optional

import pytz

from models import Summary
from prompt import build_summary_prompt, parse_instant
from schemas import NormalizedEvent, SummaryOutput

logger = logging.getLogger(__name__)


def parse_day(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string; raises ValueError otherwise."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def event_date(event: NormalizedEvent, timezone: str) -> date:
    """Calendar date of the event's start in ``timezone``."""
    tz = pytz.timezone(timezone)
    return parse_instant(event.starts_at, timezone).astimezone(tz).date()


def _utc_naive(value: str, timezone: str) -> datetime:
    return parse_instant(value, timezone).astimezone(pytz.utc).replace(tzinfo=None)


class SummaryStore:
    """Summary rows keyed by (user, event, provider), scoped by calendar date.

    The only cache in the system: a finalized row is served back verbatim
    until a caller explicitly asks to regenerate. Concurrent upserts on the
    same key are last-write-wins.
    """

    def __init__(self, session):
        self.session = session

    def list_for_day(self, user_id: int, day: date) -> list[Summary]:
        return (
            self.session.query(Summary)
            .filter_by(user_id=user_id, date=day)
            .order_by(Summary.starts_at.asc())
            .all()
        )

    def find(self, user_id: int, event_id: str, provider: str, day: date) -> Optional[Summary]:
        return (
            self.session.query(Summary)
            .filter_by(user_id=user_id, event_id=event_id, provider=provider, date=day)
            .first()
        )

    def upsert(
        self,
        user_id: int,
        event: NormalizedEvent,
        output: SummaryOutput,
        day: date,
        timezone: str,
    ) -> Summary:
        provider = event.provider.value
        summary = (
            self.session.query(Summary)
            .filter_by(user_id=user_id, event_id=event.id, provider=provider)
            .first()
        )
        if summary is None:
            summary = Summary(
                user_id=user_id,
                date=day,
                event_id=event.id,
                provider=provider,
                title=event.title,
                starts_at=_utc_naive(event.starts_at, timezone),
                ends_at=_utc_naive(event.ends_at, timezone),
                attendees=json.dumps([a.to_wire() for a in event.attendees]),
                location=event.location,
                source_blob=json.dumps(event.to_wire()),
                finalized=False,
            )
            self.session.add(summary)
        summary.summary_md = output.summary_md
        summary.action_items = json.dumps(output.action_items)
        summary.confidence = output.confidence
        summary.updated_at = datetime.utcnow()
        self.session.commit()
        return summary

    def set_finalized(self, user_id: int, summary_id: int, finalized: bool) -> Optional[Summary]:
        summary = (
            self.session.query(Summary)
            .filter_by(id=summary_id, user_id=user_id)
            .first()
        )
        if summary is None:
            return None
        summary.finalized = finalized
        summary.updated_at = datetime.utcnow()
        self.session.commit()
        return summary


def summarize_event(
    store: SummaryStore,
    generator,
    documents,
    user,
    event: NormalizedEvent,
    regenerate: bool = False,
    access_token: str | None = None,
) -> SummaryOutput:
    """Return the summary for ``event``, generating and storing it unless cached.

    A finalized stored summary is returned as-is (no LLM call) unless
    ``regenerate`` is set. Document enrichment is best effort; generation
    failures propagate as ``LLMError``.
    """
    day = event_date(event, user.timezone)
    existing = store.find(user.id, event.id, event.provider.value, day)
    if existing is not None and existing.finalized and not regenerate:
        logger.info(f"Serving finalized summary for event {event.id}")
        return existing.to_output()

    if event.attachments:
        logger.info(f"Found {len(event.attachments)} attachments for event {event.id}")
        if access_token and not documents.has_drive_access(access_token):
            logger.warning("Access token lacks Drive access; document content may be missing")
        documents.enrich_attachments(event.attachments, access_token)

    prompt = build_summary_prompt(event, user.timezone)
    output = generator.generate(prompt)
    store.upsert(user.id, event, output, day, user.timezone)
    return output
