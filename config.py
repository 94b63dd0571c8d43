import os

from dotenv import load_dotenv

from errors import ConfigError

load_dotenv(os.getenv("ENV_PATH", ".env"))

# app.config key -> environment variable it is read from
REQUIRED_KEYS = {
    "SECRET_KEY": "SECRET_KEY",
    "SQLALCHEMY_DATABASE_URI": "DATABASE_URL",
    "OPENAI_API_KEY": "OPENAI_API_KEY",
    "GOOGLE_CLIENT_ID": "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET": "GOOGLE_CLIENT_SECRET",
    "MS_CLIENT_ID": "MS_CLIENT_ID",
    "MS_CLIENT_SECRET": "MS_CLIENT_SECRET",
}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    OPENAI_API_BASE = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
    MS_CLIENT_ID = os.getenv("MS_CLIENT_ID")
    MS_CLIENT_SECRET = os.getenv("MS_CLIENT_SECRET")
    MS_TENANT_ID = os.getenv("MS_TENANT_ID", "common")

    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    RECAP_FROM_EMAIL = os.getenv("RECAP_FROM_EMAIL", "DayBrief <noreply@daybrief.com>")
    SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN")

    APP_URL = os.getenv("APP_URL", "http://localhost:8000")
    PORT = int(os.getenv("PORT", 8000))
    DEFAULT_TIMEZONE = "America/Los_Angeles"


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    OPENAI_API_KEY = "test-key"
    GOOGLE_CLIENT_ID = "google-client"
    GOOGLE_CLIENT_SECRET = "google-secret"
    MS_CLIENT_ID = "ms-client"
    MS_CLIENT_SECRET = "ms-secret"
    SENDGRID_API_KEY = None
    SLACK_BOT_TOKEN = None
    APP_URL = "http://localhost"


def validate_config(config):
    """Raise ConfigError listing every required key that is unset or blank.

    ``config`` is any mapping, typically a Flask ``app.config``.
    """
    missing = [
        env_name
        for key, env_name in REQUIRED_KEYS.items()
        if not str(config.get(key) or "").strip()
    ]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Please check your .env file."
        )
