"""Exception hierarchy for DayBrief."""


class DayBriefError(Exception):
    """Base exception for all DayBrief errors."""


class ConfigError(DayBriefError):
    """Required configuration is missing or invalid."""


# Calendar
class CalendarError(DayBriefError):
    """A calendar provider request failed.

    The upstream HTTP status, when known, is kept on ``status`` and is also
    part of the message.
    """

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class TokenRefreshError(CalendarError):
    """Exchanging a refresh token for a new access token failed."""


class AccessExpiredError(CalendarError):
    """Calendar access expired and could not be renewed; the user must sign in again."""


# Documents
class DocumentFetchError(DayBriefError):
    """Failed to fetch a Drive/Docs document."""


# LLM
class LLMError(DayBriefError):
    """Summary generation failed."""


# Recap
class RecapDeliveryError(DayBriefError):
    """Failed to deliver a recap over one channel."""
