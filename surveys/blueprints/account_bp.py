"""
Account blueprint — OIDC sign-in, tenant sign-up and sign-out for the web app.

Endpoints:
    GET  /account/sign-in     → redirect to the identity provider
    GET  /account/sign-up     → same, flagged as a tenant sign-up
    GET  /account/callback    → code exchange, provisioning, session
    POST /account/sign-out    → clear session, provider sign-out
"""

import logging
from urllib.parse import urlparse

from flask import Blueprint, current_app, redirect, render_template, request, session, url_for

from surveys.auth import sign_in_session, sign_out_session
from surveys.models import db
from surveys.security.claims import ClaimTypes, claim_value
from surveys.services import oidc_service, tenant_service
from surveys.services.token_service import generate_access_token

logger = logging.getLogger(__name__)

account_bp = Blueprint("account", __name__, url_prefix="/account")


def _callback_url():
    return url_for("account.callback", _external=True)


def _safe_next(target):
    """Only allow same-site relative redirects after sign-in."""
    if not target:
        return url_for("survey.index")
    parsed = urlparse(target)
    if parsed.scheme or parsed.netloc or not target.startswith("/"):
        return url_for("survey.index")
    return target


def _start_flow(signing_up: bool):
    try:
        url, state, nonce = oidc_service.build_authorize_url(_callback_url())
    except oidc_service.OIDCError:
        logger.exception("Could not start sign-in")
        return render_template("error.html", message="Sign-in is currently unavailable"), 502
    next_url = request.args.get("next")
    session.clear()
    session["oidc_state"] = state
    session["oidc_nonce"] = nonce
    session["signing_up"] = signing_up
    session["next_url"] = _safe_next(next_url)
    return redirect(url)


@account_bp.route("/sign-in", methods=["GET"])
def sign_in():
    return _start_flow(signing_up=False)


@account_bp.route("/sign-up", methods=["GET"])
def sign_up():
    return _start_flow(signing_up=True)


@account_bp.route("/callback", methods=["GET"])
def callback():
    error = request.args.get("error")
    if error:
        logger.warning("Identity provider returned an error: %s %s",
                       error, request.args.get("error_description", ""))
        return render_template("error.html", message="Sign-in failed"), 400

    expected_state = session.pop("oidc_state", None)
    if not expected_state or request.args.get("state") != expected_state:
        logger.warning("OIDC state mismatch")
        return render_template("error.html", message="Sign-in failed"), 400

    code = request.args.get("code")
    if not code:
        return render_template("error.html", message="Sign-in failed"), 400

    nonce = session.pop("oidc_nonce", None)
    signing_up = bool(session.pop("signing_up", False))
    next_url = session.pop("next_url", None) or url_for("survey.index")

    try:
        token_data = oidc_service.exchange_code(code, _callback_url())
        claims = oidc_service.decode_id_token(token_data["id_token"], nonce)
    except oidc_service.OIDCError:
        logger.exception("OIDC callback failed")
        return render_template("error.html", message="Sign-in failed"), 502

    try:
        app_claims = tenant_service.sign_in_user(claims, signing_up=signing_up)
        db.session.commit()
    except tenant_service.TenantNotRegisteredError:
        db.session.rollback()
        return render_template(
            "error.html",
            message="Your organization is not registered. An administrator must sign up first.",
            show_sign_up=True,
        ), 403
    except tenant_service.SignInError as exc:
        db.session.rollback()
        return render_template("error.html", message=str(exc)), 403
    except Exception:
        logger.exception("Database commit failed")
        db.session.rollback()
        return render_template("error.html", message="Unexpected Error"), 500

    session_claims = {
        ClaimTypes.ISSUER: claim_value(claims, ClaimTypes.ISSUER),
        ClaimTypes.TENANT_ID: claim_value(claims, ClaimTypes.TENANT_ID),
        ClaimTypes.OBJECT_ID: claim_value(claims, ClaimTypes.OBJECT_ID),
        ClaimTypes.EMAIL: claim_value(claims, ClaimTypes.EMAIL, ""),
        ClaimTypes.NAME: claim_value(claims, ClaimTypes.NAME, ""),
        ClaimTypes.ROLES: claims.get(ClaimTypes.ROLES) or [],
        **app_claims,
    }
    if current_app.config.get("OIDC_API_SCOPE"):
        access_token = token_data.get("access_token")
    else:
        # No API scope registered: the API runs in shared-secret mode
        access_token = generate_access_token(session_claims)

    sign_in_session(session_claims, access_token)
    logger.info(
        "User signed in",
        extra={
            "user_id": app_claims[ClaimTypes.SURVEY_USER_ID],
            "tenant_id": app_claims[ClaimTypes.SURVEY_TENANT_ID],
            "issuer": session_claims[ClaimTypes.ISSUER],
        },
    )
    return redirect(next_url)


@account_bp.route("/sign-out", methods=["POST"])
def sign_out():
    sign_out_session()
    post_logout = (current_app.config.get("OIDC_POST_LOGOUT_REDIRECT_URI")
                   or url_for("home.index", _external=True))
    end_session = oidc_service.build_end_session_url(post_logout)
    return redirect(end_session or url_for("home.index"))
