"""
Multi-Tenant Surveys
Web session authentication & CSRF.

Provides:
    - Session helpers: the signed-in user's claims and API access token live
      in the signed Flask session cookie
    - ``login_required`` / ``policy_required`` decorators for HTML views
    - Session-bound CSRF token, checked on every state-changing form post

Session keys:
    claims        — id_token claims plus survey_userid / survey_tenantid
    access_token  — bearer token forwarded to the survey API
"""

import functools
import hmac
import logging
import secrets

from flask import abort, g, redirect, render_template, request, session, url_for

from surveys.security.claims import SurveyPrincipal
from surveys.security.policy import evaluate_policy

logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"

# Paths whose POSTs are not form posts from our own pages
_CSRF_EXEMPT_PREFIXES = ("/api/", "/account/callback")


# ── Session helpers ──────────────────────────────────────────────────────────

def sign_in_session(claims: dict, access_token: str | None) -> None:
    """Replace the session with a signed-in one."""
    session.clear()
    session["claims"] = claims
    if access_token:
        session["access_token"] = access_token
    session.permanent = True


def sign_out_session() -> None:
    session.clear()


def current_principal() -> SurveyPrincipal | None:
    """The signed-in web user, or None."""
    if "web_principal" not in g:
        claims = session.get("claims") or {}
        g.web_principal = SurveyPrincipal.from_claims(claims) if claims else None
    return g.web_principal


# ── Decorators ───────────────────────────────────────────────────────────────

def login_required(f):
    """Redirect anonymous users to sign-in, returning here afterwards."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_principal() is None:
            return redirect(url_for("account.sign_in", next=request.full_path))
        return f(*args, **kwargs)
    return decorated


def policy_required(policy_name: str):
    """
    Decorator: signed-in user must satisfy ``policy_name``.

    Usage:
        @bp.route("/survey/create")
        @policy_required(PolicyNames.REQUIRE_SURVEY_CREATOR)
        def create(): ...
    """
    def decorator(f):
        @functools.wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            principal = current_principal()
            if not evaluate_policy(principal, policy_name):
                logger.warning(
                    "User %s denied: policy '%s' on %s",
                    principal.user_id, policy_name, request.path,
                )
                return render_template(
                    "error.html", message="You are not authorized to perform this action",
                ), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── CSRF protection for forms ────────────────────────────────────────────────

def csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _check_csrf():
    if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
        return
    if request.path.startswith(_CSRF_EXEMPT_PREFIXES):
        return
    expected = session.get(CSRF_SESSION_KEY)
    supplied = request.form.get(CSRF_FORM_FIELD) or request.headers.get("X-CSRF-Token")
    if not expected or not supplied or not hmac.compare_digest(expected, supplied):
        logger.warning("CSRF token missing or invalid on %s %s", request.method, request.path)
        abort(400, description="CSRF token missing or invalid")


def init_auth(app):
    """Install the CSRF check and template helpers on the web app."""
    app.before_request(_check_csrf)

    @app.context_processor
    def _inject_auth():
        return {
            "csrf_token": csrf_token,
            "current_user": current_principal(),
        }

    logger.debug("Web auth installed")
