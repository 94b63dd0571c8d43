"""Wire schemas shared by the calendar, summary and recap code.

All models serialize with camelCase keys (``startsAt``, ``summaryMd``...)
and accept either camelCase or snake_case on input.
"""
from enum import Enum
from typing import List, Literal, Optional

import pytz
from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Provider(str, Enum):
    GOOGLE = "google"
    MICROSOFT = "microsoft"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Attendee(WireModel):
    name: Optional[str] = None
    email: Optional[str] = None
    required: Optional[bool] = None


class Organizer(WireModel):
    name: Optional[str] = None
    email: Optional[str] = None


AttachmentType = Literal["doc", "sheet", "pdf", "other"]


class DocumentAttachment(WireModel):
    id: str
    title: str
    url: str
    type: AttachmentType
    content: Optional[str] = None


class NormalizedEvent(WireModel):
    """Provider-agnostic calendar event. ``id`` is only unique within ``provider``."""

    id: str
    provider: Provider
    title: str
    description: Optional[str] = None
    starts_at: str
    ends_at: str
    attendees: List[Attendee]
    organizer: Optional[Organizer] = None
    location: Optional[str] = None
    html_link: Optional[str] = None
    attachments: Optional[List[DocumentAttachment]] = None

    @model_validator(mode="after")
    def _starts_before_end(self):
        starts = date_parser.parse(self.starts_at)
        ends = date_parser.parse(self.ends_at)
        # naive and aware instants are not comparable
        if (starts.tzinfo is None) == (ends.tzinfo is None) and ends < starts:
            raise ValueError("endsAt must not be before startsAt")
        return self


class SummaryOutput(WireModel):
    summary_md: str
    action_items: List[str]
    confidence: float


class SummarizeRequest(WireModel):
    event: NormalizedEvent
    regenerate: bool = False


class SettingsUpdate(WireModel):
    timezone: Optional[str] = None
    recap_email: Optional[bool] = None
    recap_slack: Optional[bool] = None
    slack_user_id: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value):
        if value is not None and value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value}")
        return value


class FinalizeRequest(WireModel):
    finalized: bool


class RecapRequest(WireModel):
    date: Optional[str] = None
