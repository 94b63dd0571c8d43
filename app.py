import json
import logging
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Optional

from authlib.integrations.flask_client import OAuth
from flask import (
    Blueprint, Flask, session, redirect, url_for,
    request, current_app, jsonify
)
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from accounts import (
    calendar_account, delete_user_data, find_user, google_access_token,
    record_sign_in, save_access_token, update_settings
)
from calendars import MS_SCOPES, build_calendar_providers, fetch_events_with_refresh
from config import Config, validate_config
from documents import DocumentFetcher
from errors import AccessExpiredError, CalendarError, LLMError
from llm import SummaryGenerator
from models import db
from recap import RecapMailer, SlackNotifier, send_daily_recap
from schemas import (
    FinalizeRequest, Provider, RecapRequest, SettingsUpdate, SummarizeRequest
)
from summaries import SummaryStore, parse_day, summarize_event

GOOGLE_SCOPES = (
    "openid email profile "
    "https://www.googleapis.com/auth/calendar.readonly "
    "https://www.googleapis.com/auth/documents.readonly "
    "https://www.googleapis.com/auth/drive.readonly"
)

bp = Blueprint("daybrief", __name__)


@dataclass
class Services:
    """Outbound clients, built once per app and handed to the handlers."""
    calendars: dict
    generator: object
    documents: object
    mailer: Optional[RecapMailer] = None
    slack: Optional[SlackNotifier] = None


def build_services(config):
    return Services(
        calendars=build_calendar_providers(config),
        generator=SummaryGenerator(
            api_key=config["OPENAI_API_KEY"],
            base_url=config["OPENAI_API_BASE"],
            model=config["OPENAI_MODEL"],
        ),
        documents=DocumentFetcher(),
        mailer=RecapMailer(config["SENDGRID_API_KEY"], config["RECAP_FROM_EMAIL"])
        if config.get("SENDGRID_API_KEY") else None,
        slack=SlackNotifier(config["SLACK_BOT_TOKEN"])
        if config.get("SLACK_BOT_TOKEN") else None,
    )


def _register_oauth(app):
    oauth = OAuth(app)
    oauth.register(
        name="google",
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_id=app.config["GOOGLE_CLIENT_ID"],
        client_secret=app.config["GOOGLE_CLIENT_SECRET"],
        authorize_params={"access_type": "offline", "prompt": "consent"},
        client_kwargs={"scope": GOOGLE_SCOPES},
    )
    tenant = app.config["MS_TENANT_ID"]
    oauth.register(
        name="microsoft",
        client_id=app.config["MS_CLIENT_ID"],
        client_secret=app.config["MS_CLIENT_SECRET"],
        authorize_url=f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
        access_token_url=f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token",
        api_base_url="https://graph.microsoft.com/v1.0/",
        client_kwargs={"scope": MS_SCOPES},
    )
    return oauth


def create_app(config_object=Config, services=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    if not app.config.get("TESTING"):
        validate_config(app.config)

    db.init_app(app)
    app.extensions["daybrief.oauth"] = _register_oauth(app)
    app.extensions["daybrief"] = services or build_services(app.config)
    app.register_blueprint(bp)

    with app.app_context():
        db.create_all()
    return app


def _services():
    return current_app.extensions["daybrief"]


def _today():
    return datetime.utcnow().strftime("%Y-%m-%d")


def _invalid(message, error):
    return jsonify({
        "error": message,
        "details": json.loads(error.json(include_url=False)),
    }), 400


def login_required(view):
    """Resolve the signed-in user and pass it as the first argument."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        email = (session.get("user") or {}).get("email")
        if not email:
            return jsonify({"error": "Unauthorized"}), 401
        user = find_user(db.session, email)
        if user is None:
            return jsonify({"error": "User not found"}), 404
        return view(user, *args, **kwargs)
    return wrapper


@bp.app_errorhandler(Exception)
def handle_unexpected(error):
    if isinstance(error, HTTPException):
        return error
    current_app.logger.exception(f"Unhandled error: {error}")
    return jsonify({"error": "Internal server error"}), 500


# ---- Auth ----

@bp.route("/")
def index():
    if not session.get("user"):
        return redirect(url_for("daybrief.login", provider=Provider.GOOGLE.value))
    return jsonify({"user": session["user"], "provider": session.get("provider")})


@bp.route("/login/<provider>")
def login(provider):
    try:
        provider = Provider(provider)
    except ValueError:
        return jsonify({"error": "Unsupported provider"}), 404
    client = current_app.extensions["daybrief.oauth"].create_client(provider.value)
    return client.authorize_redirect(
        url_for("daybrief.auth_callback", provider=provider.value, _external=True)
    )


@bp.route("/auth/callback/<provider>")
def auth_callback(provider):
    try:
        provider = Provider(provider)
    except ValueError:
        return jsonify({"error": "Unsupported provider"}), 404
    client = current_app.extensions["daybrief.oauth"].create_client(provider.value)
    token = client.authorize_access_token()

    if provider is Provider.GOOGLE:
        profile = token.get("userinfo") or client.userinfo()
        account_id = profile["sub"]
        email = profile.get("email")
        name = profile.get("name")
        image = profile.get("picture")
    else:
        profile = client.get("me", token=token).json()
        account_id = profile["id"]
        email = profile.get("mail") or profile.get("userPrincipalName")
        name = profile.get("displayName")
        image = None

    if not email:
        current_app.logger.warning(f"[Auth] {provider.value} sign-in returned no email")
        return jsonify({"error": "No email address on this account"}), 400

    record_sign_in(
        db.session, provider.value, account_id, email, token,
        name=name, image=image,
        default_timezone=current_app.config["DEFAULT_TIMEZONE"],
    )
    current_app.logger.info(f"[Auth] {email} signed in with {provider.value}")
    session["user"] = {"email": email, "name": name}
    session["provider"] = provider.value
    return redirect(url_for("daybrief.index"))


@bp.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("daybrief.index"))


# ---- API ----

@bp.route("/api/events")
@login_required
def events(user):
    date = request.args.get("date") or _today()
    try:
        parse_day(date)
    except ValueError:
        return jsonify({"error": f"Invalid date: {date}"}), 400

    account = calendar_account(user)
    if account is None or not account.access_token:
        return jsonify({"error": "No calendar access"}), 403

    try:
        calendar = _services().calendars[Provider(account.provider)]
    except (ValueError, KeyError):
        return jsonify({"error": "Unsupported provider"}), 400

    try:
        found = fetch_events_with_refresh(
            calendar, account, date, user.timezone,
            save_token=lambda acct, token: save_access_token(db.session, acct, token),
        )
    except AccessExpiredError as e:
        return jsonify({"error": str(e)}), 403
    except CalendarError as e:
        current_app.logger.error(f"[Events] Calendar API error: {e}")
        return jsonify({
            "error": "Failed to fetch calendar events",
            "details": str(e),
        }), 500

    current_app.logger.info(f"[Events] {len(found)} events for {user.email} on {date}")
    return jsonify({"events": [event.to_wire() for event in found]})


@bp.route("/api/summarize", methods=["POST"])
@login_required
def summarize(user):
    try:
        payload = SummarizeRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _invalid("Invalid request data", e)

    services = _services()
    try:
        output = summarize_event(
            SummaryStore(db.session),
            services.generator,
            services.documents,
            user,
            payload.event,
            regenerate=payload.regenerate,
            access_token=google_access_token(user),
        )
    except LLMError as e:
        current_app.logger.error(f"[Summarize] {e}")
        return jsonify({
            "error": "Failed to generate summary",
            "details": str(e),
        }), 500
    except ValueError as e:
        # unparseable startsAt/endsAt
        return jsonify({"error": "Invalid request data", "details": str(e)}), 400

    return jsonify(output.to_wire())


@bp.route("/api/summaries")
@login_required
def summaries(user):
    date = request.args.get("date") or _today()
    try:
        day = parse_day(date)
    except ValueError:
        return jsonify({"error": f"Invalid date: {date}"}), 400
    rows = SummaryStore(db.session).list_for_day(user.id, day)
    return jsonify({"summaries": [row.to_dict() for row in rows]})


@bp.route("/api/summaries/<int:summary_id>", methods=["PATCH"])
@login_required
def finalize_summary(user, summary_id):
    try:
        payload = FinalizeRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _invalid("Invalid request data", e)

    summary = SummaryStore(db.session).set_finalized(user.id, summary_id, payload.finalized)
    if summary is None:
        return jsonify({"error": "Summary not found"}), 404
    return jsonify(summary.to_dict())


@bp.route("/api/recap/send", methods=["POST"])
@login_required
def send_recap(user):
    try:
        payload = RecapRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _invalid("Invalid request data", e)

    date = payload.date or _today()
    try:
        day = parse_day(date)
    except ValueError:
        return jsonify({"error": f"Invalid date: {date}"}), 400

    services = _services()
    result = send_daily_recap(
        user,
        date,
        SummaryStore(db.session).list_for_day(user.id, day),
        mailer=services.mailer,
        slack=services.slack,
        settings_url=f"{current_app.config['APP_URL']}/settings",
    )
    current_app.logger.info(f"[Recap] {date} for {user.email} sent to {result.sent_to}")
    return jsonify({
        "success": True,
        "sentTo": result.sent_to,
        "preview": result.content[:200] + "...",
    })


@bp.route("/api/user/settings", methods=["PATCH"])
@login_required
def user_settings(user):
    try:
        settings = SettingsUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _invalid("Invalid settings data", e)

    update_settings(db.session, user, settings)
    return jsonify({"success": True, "user": user.to_dict()})


@bp.route("/api/user/data", methods=["DELETE"])
@login_required
def user_data(user):
    delete_user_data(db.session, user)
    session.clear()
    return jsonify({"success": True})


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )
    app = create_app()
    app.run(port=app.config["PORT"], debug=True)
