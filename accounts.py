"""Users and their linked OAuth accounts."""

import logging
from datetime import datetime

from models import Account, User
from schemas import Provider

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = ("timezone", "recap_email", "recap_slack", "slack_user_id")


def find_user(session, email):
    return session.query(User).filter_by(email=email).first()


def record_sign_in(session, provider, provider_account_id, email, token, name=None,
                   image=None, default_timezone="America/Los_Angeles"):
    """Create the user on first sign-in and upsert the provider account's tokens."""
    user = find_user(session, email)
    if user is None:
        user = User(email=email, name=name, image=image, timezone=default_timezone)
        session.add(user)
        session.flush()
        logger.info(f"Created user {email}")

    account = (
        session.query(Account)
        .filter_by(provider=provider, provider_account_id=provider_account_id)
        .first()
    )
    if account is None:
        account = Account(
            user_id=user.id,
            provider=provider,
            provider_account_id=provider_account_id,
            token_type=token.get("token_type"),
            scope=token.get("scope"),
            id_token=token.get("id_token"),
        )
        session.add(account)
    account.access_token = token.get("access_token")
    # providers only send a refresh token on consent; keep the old one otherwise
    if token.get("refresh_token"):
        account.refresh_token = token["refresh_token"]
    account.expires_at = token.get("expires_at")
    session.commit()
    return user


def calendar_account(user):
    """The account used for calendar reads: the first one the user linked."""
    accounts = sorted(user.accounts, key=lambda a: a.id)
    return accounts[0] if accounts else None


def google_access_token(user):
    for account in user.accounts:
        if account.provider == Provider.GOOGLE.value and account.access_token:
            return account.access_token
    return None


def save_access_token(session, account, access_token):
    account.access_token = access_token
    session.commit()


def update_settings(session, user, settings):
    """Apply a SettingsUpdate, touching only the fields that were sent."""
    for name in SETTINGS_FIELDS:
        value = getattr(settings, name)
        if value is not None:
            setattr(user, name, value)
    user.updated_at = datetime.utcnow()
    session.commit()
    return user


def delete_user_data(session, user):
    """Erase the user with their accounts and summaries."""
    user_id = user.id
    session.delete(user)
    session.commit()
    logger.info(f"Deleted all data for user {user_id}")
