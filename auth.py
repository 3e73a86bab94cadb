import logging
from datetime import datetime
from functools import wraps

from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for
from flask_login import LoginManager, current_user, login_user, logout_user
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from errors import AdminRequired, NotSignedIn
from models import db, User

logger = logging.getLogger(__name__)

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

login_manager = LoginManager()
login_manager.login_view = "auth.sign_in"

bp = Blueprint("auth", __name__)


class AdminGate:
    def __init__(self, admin_emails=()):
        self.admin_emails = frozenset(e.strip().lower() for e in admin_emails if e and e.strip())

    def init_app(self, app):
        app.extensions["admin_gate"] = self

    def is_admin(self, user):
        if user is None or not getattr(user, "is_authenticated", False):
            return False
        return (user.email or "").lower() in self.admin_emails


def admin_gate():
    return current_app.extensions["admin_gate"]


def is_admin(user=None):
    return admin_gate().is_admin(current_user if user is None else user)


def session_user():
    if current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def require_user():
    user = session_user()
    if user is None:
        raise NotSignedIn()
    return user


def require_admin():
    if not is_admin():
        raise AdminRequired()
    return current_user._get_current_object()


def admin_required(fn):
    """Page decorator: non-admins are sent to the admin sign-in page."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return redirect(url_for("auth.admin_sign_in", next=request.path))
        if not is_admin():
            flash("This account is not allowed into the back office.", "danger")
            return redirect(url_for("auth.admin_sign_in"))
        return fn(*args, **kwargs)
    return wrapper


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


# ---- Google OAuth ----

def _build_flow(state=None):
    client_config = {
        "web": {
            "client_id": current_app.config["GOOGLE_CLIENT_ID"],
            "client_secret": current_app.config["GOOGLE_CLIENT_SECRET"],
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=SCOPES,
        state=state,
        redirect_uri=url_for("auth.callback", _external=True),
    )


def fetch_google_profile(credentials):
    service = build("people", "v1", credentials=credentials, cache_discovery=False)
    results = service.people().get(
        resourceName="people/me",
        personFields="emailAddresses,names",
    ).execute()

    email = results["emailAddresses"][0]["value"] if results.get("emailAddresses") else None
    name = results["names"][0]["displayName"] if results.get("names") else None
    return {"google_id": results.get("resourceName"), "email": email, "name": name}


def sign_in_google_user(profile):
    """Find (by Google id, then email) or create the user and stamp the login time."""
    email = (profile.get("email") or "").strip().lower()
    if not email:
        return None

    user = None
    if profile.get("google_id"):
        user = User.query.filter_by(google_id=profile["google_id"]).first()
    if user is None:
        user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, name=profile.get("name"))
        db.session.add(user)

    user.google_id = profile.get("google_id") or user.google_id
    if not user.name:
        user.name = profile.get("name")
    user.last_logged_in = datetime.utcnow()
    db.session.commit()
    logger.info("User %s signed in (id=%s)", email, user.id)
    return user


@bp.route("/sign-in")
def sign_in():
    if current_user.is_authenticated:
        return redirect(url_for("storefront.index"))
    return render_template("sign_in.html", admin=False)


@bp.route("/admin/sign-in")
def admin_sign_in():
    if is_admin():
        return redirect(url_for("admin_pages.dashboard"))
    return render_template("sign_in.html", admin=True)


@bp.route("/auth/google")
def google_login():
    flow = _build_flow()
    authorization_url, state = flow.authorization_url(
        access_type="online",
        include_granted_scopes="true",
        prompt="select_account",
    )
    session["oauth_state"] = state
    session["oauth_next"] = request.args.get("next") or url_for("storefront.index")
    return redirect(authorization_url)


@bp.route("/auth/callback")
def callback():
    state = session.pop("oauth_state", None)
    next_url = session.pop("oauth_next", None) or url_for("storefront.index")
    if not state or request.args.get("state") != state:
        flash("Sign-in expired, please try again.", "warning")
        return redirect(url_for("auth.sign_in"))

    try:
        flow = _build_flow(state=state)
        flow.fetch_token(authorization_response=request.url)
        profile = fetch_google_profile(flow.credentials)
    except Exception:
        logger.exception("Google sign-in failed")
        flash("Google sign-in failed.", "danger")
        return redirect(url_for("auth.sign_in"))

    user = sign_in_google_user(profile)
    if user is None:
        flash("Your Google account has no email address.", "danger")
        return redirect(url_for("auth.sign_in"))

    login_user(user)
    if not next_url.startswith("/"):
        next_url = url_for("storefront.index")
    return redirect(next_url)


@bp.route("/logout")
def logout():
    logout_user()
    return redirect(url_for("storefront.index"))
