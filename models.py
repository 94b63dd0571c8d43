import json
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

from schemas import SummaryOutput

db = SQLAlchemy()


def _iso(value):
    # stored datetimes are naive UTC
    return value.isoformat() + "Z" if value else None


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    email = db.Column(db.String, unique=True, nullable=False)
    name = db.Column(db.String)
    image = db.Column(db.String)
    timezone = db.Column(db.String, nullable=False, default="America/Los_Angeles")
    recap_email = db.Column(db.Boolean, nullable=False, default=True)
    recap_slack = db.Column(db.Boolean, nullable=False, default=False)
    slack_user_id = db.Column(db.String)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    accounts = db.relationship(
        "Account", backref="user", cascade="all, delete-orphan"
    )
    summaries = db.relationship(
        "Summary", backref="user", cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "timezone": self.timezone,
            "recapEmail": self.recap_email,
            "recapSlack": self.recap_slack,
            "slackUserId": self.slack_user_id,
        }


class Account(db.Model):
    __tablename__ = "accounts"
    __table_args__ = (db.UniqueConstraint("provider", "provider_account_id"),)
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    provider = db.Column(db.String, nullable=False)
    provider_account_id = db.Column(db.String, nullable=False)
    access_token = db.Column(db.Text)
    refresh_token = db.Column(db.Text)
    expires_at = db.Column(db.Integer)
    token_type = db.Column(db.String)
    scope = db.Column(db.Text)
    id_token = db.Column(db.Text)


class Summary(db.Model):
    __tablename__ = "summaries"
    __table_args__ = (db.UniqueConstraint("user_id", "event_id", "provider"),)
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date = db.Column(db.Date, nullable=False, index=True)
    event_id = db.Column(db.String, nullable=False)
    provider = db.Column(db.String, nullable=False)
    title = db.Column(db.String, nullable=False)
    starts_at = db.Column(db.DateTime, nullable=False)
    ends_at = db.Column(db.DateTime, nullable=False)
    attendees = db.Column(db.Text, nullable=False, default="[]")       # JSON text
    location = db.Column(db.String)
    source_blob = db.Column(db.Text, nullable=False)                   # JSON text
    summary_md = db.Column(db.Text, nullable=False)
    action_items = db.Column(db.Text, nullable=False, default="[]")    # JSON text
    confidence = db.Column(db.Float, nullable=False)
    finalized = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def attendee_list(self):
        return json.loads(self.attendees or "[]")

    @property
    def action_item_list(self):
        return json.loads(self.action_items or "[]")

    def to_output(self):
        return SummaryOutput(
            summary_md=self.summary_md,
            action_items=self.action_item_list,
            confidence=self.confidence,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "eventId": self.event_id,
            "provider": self.provider,
            "date": self.date.isoformat(),
            "title": self.title,
            "startsAt": _iso(self.starts_at),
            "endsAt": _iso(self.ends_at),
            "attendees": self.attendee_list,
            "location": self.location,
            "summaryMd": self.summary_md,
            "actionItems": self.action_item_list,
            "confidence": self.confidence,
            "finalized": self.finalized,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
