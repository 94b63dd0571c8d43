"""End-of-day recap: compose the digest and deliver it by email and Slack."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

import pytz
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from errors import RecapDeliveryError
from prompt import format_local_time

logger = logging.getLogger(__name__)

NO_MEETINGS = "No meetings today 🎉"


def recap_heading(date: str) -> str:
    return f"# Your DayBrief — {date}"


def compose_recap(
    summaries: Sequence,
    date: str,
    timezone: str,
    settings_url: Optional[str] = None,
) -> str:
    """Render stored summaries (in the given order) as one markdown digest.

    Each summary needs ``title``, ``starts_at`` (naive UTC), ``summary_md``
    and ``action_item_list``.
    """
    if not summaries:
        return f"{recap_heading(date)}\n\n{NO_MEETINGS}\n\n—\nSent by DayBrief"

    sections = []
    for summary in summaries:
        time_label = format_local_time(pytz.utc.localize(summary.starts_at), timezone)
        items = summary.action_item_list
        action_lines = "\n".join(f"- {item}" for item in items) if items else "- None"
        sections.append(
            f"## {time_label} — {summary.title}\n"
            f"{summary.summary_md}\n\n"
            f"**Action Items**\n"
            f"{action_lines}"
        )

    footer = "—\nSent by DayBrief"
    if settings_url:
        footer += f" • [Update Settings]({settings_url})"
    return f"{recap_heading(date)}\n\n" + "\n\n".join(sections) + f"\n\n{footer}"


def markdown_to_html(markdown: str) -> str:
    """Minimal converter: headings, whole-line bold, bullet lists, line breaks."""
    text = html.escape(markdown, quote=False)
    text = re.sub(r"^# (.+)$", r"<h1>\1</h1>", text, flags=re.MULTILINE)
    text = re.sub(r"^## (.+)$", r"<h2>\1</h2>", text, flags=re.MULTILINE)
    text = re.sub(r"^\*\*(.+)\*\*$", r"<strong>\1</strong>", text, flags=re.MULTILINE)
    text = re.sub(r"^- (.+)$", r"<li>\1</li>", text, flags=re.MULTILINE)
    text = text.replace("\n", "<br>")
    return re.sub(r"(<li>.*?</li>)(<br>(<li>.*?</li>))*(<br>|$)", r"<ul>\g<0></ul>", text)


class RecapMailer:
    """Sends recap emails through SendGrid."""

    def __init__(self, api_key: str, from_email: str):
        self._client = SendGridAPIClient(api_key)
        self.from_email = from_email

    def send(self, to: str, content: str, date: str) -> None:
        message = Mail(
            from_email=self.from_email,
            to_emails=to,
            subject=f"Your DayBrief — {date}",
            html_content=markdown_to_html(content),
            plain_text_content=content,
        )
        try:
            response = self._client.send(message)
        except Exception as e:
            raise RecapDeliveryError(f"Failed to send recap email: {e}") from e
        if response.status_code >= 300:
            raise RecapDeliveryError(f"Failed to send recap email: {response.status_code}")


class SlackNotifier:
    """Sends recaps as Slack direct messages."""

    def __init__(self, token: str):
        self._client = WebClient(token=token)

    def send(self, user_id: str, content: str) -> None:
        try:
            self._client.chat_postMessage(channel=user_id, text=content, mrkdwn=True)
        except SlackApiError as e:
            raise RecapDeliveryError(
                f"Failed to send recap Slack DM: {e.response['error']}"
            ) from e


@dataclass
class RecapResult:
    content: str
    sent_to: list[str] = field(default_factory=list)


def send_daily_recap(
    user,
    date: str,
    summaries: Sequence,
    mailer: Optional[RecapMailer] = None,
    slack: Optional[SlackNotifier] = None,
    settings_url: Optional[str] = None,
) -> RecapResult:
    """Compose the recap for ``date`` and deliver it to every enabled channel.

    A channel is used only when the user turned it on, has the address it
    needs, and a client for it is configured. One channel failing never
    stops the other.
    """
    content = compose_recap(summaries, date, user.timezone, settings_url)
    result = RecapResult(content=content)
    if not summaries:
        return result

    if user.recap_email and user.email and mailer is not None:
        try:
            mailer.send(user.email, content, date)
            result.sent_to.append("email")
        except Exception as e:
            logger.error(f"Failed to send recap email: {e}")

    if user.recap_slack and user.slack_user_id and slack is not None:
        try:
            slack.send(user.slack_user_id, content)
            result.sent_to.append("slack")
        except Exception as e:
            logger.error(f"Failed to send recap Slack DM: {e}")

    return result
