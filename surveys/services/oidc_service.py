"""
OIDC Service — authorization-code sign-in against the identity provider.

All calls to the provider go through httpx; the id_token is verified with
PyJWT against the provider's JWKS (``jwks_uri`` from the discovery document).

Flow:
    build_authorize_url()   → redirect the browser, keep state + nonce in session
    exchange_code()         → token endpoint (authorization_code grant)
    decode_id_token()       → verified claims, nonce checked
    build_end_session_url() → provider sign-out, when the provider supports it
"""

import logging
import secrets
from urllib.parse import urlencode

import httpx
import jwt
from flask import current_app

logger = logging.getLogger(__name__)


class OIDCError(Exception):
    """The identity provider could not be reached or returned an error."""


def _discovery_url() -> str:
    authority = current_app.config["OIDC_AUTHORITY"].rstrip("/")
    return f"{authority}/.well-known/openid-configuration"


def get_metadata() -> dict:
    """Fetch the OIDC discovery document."""
    url = _discovery_url()
    try:
        resp = httpx.get(url, timeout=10)
        resp.raise_for_status()
        return resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("OIDC discovery failed for %s: %s", url, e)
        raise OIDCError(f"Failed to fetch OIDC metadata: {e}") from e


def _scopes() -> str:
    scopes = current_app.config.get("OIDC_SCOPES") or "openid email profile"
    api_scope = current_app.config.get("OIDC_API_SCOPE")
    if api_scope and api_scope not in scopes.split():
        scopes = f"{scopes} {api_scope}"
    return scopes


def build_authorize_url(redirect_uri: str) -> tuple[str, str, str]:
    """
    Build the authorization URL for the provider.
    Returns (authorize_url, state, nonce); state and nonce must be stored in session.
    """
    metadata = get_metadata()
    authorize_endpoint = metadata.get("authorization_endpoint")
    if not authorize_endpoint:
        raise OIDCError("No authorization_endpoint in OIDC metadata")

    state = secrets.token_urlsafe(32)
    nonce = secrets.token_urlsafe(16)
    params = {
        "client_id": current_app.config["OIDC_CLIENT_ID"],
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": _scopes(),
        "state": state,
        "nonce": nonce,
        "response_mode": "query",
    }
    return f"{authorize_endpoint}?{urlencode(params)}", state, nonce


def exchange_code(code: str, redirect_uri: str) -> dict:
    """Exchange the authorization code for tokens (id_token, access_token, ...)."""
    metadata = get_metadata()
    token_endpoint = metadata.get("token_endpoint")
    if not token_endpoint:
        raise OIDCError("No token_endpoint in OIDC metadata")

    try:
        resp = httpx.post(
            token_endpoint,
            data={
                "grant_type": "authorization_code",
                "client_id": current_app.config["OIDC_CLIENT_ID"],
                "client_secret": current_app.config.get("OIDC_CLIENT_SECRET") or "",
                "code": code,
                "redirect_uri": redirect_uri,
                "scope": _scopes(),
            },
            timeout=15,
        )
        resp.raise_for_status()
        token_data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("OIDC token exchange failed: %s", e)
        raise OIDCError(f"Token exchange failed: {e}") from e

    if not token_data.get("id_token"):
        raise OIDCError("Token response carries no id_token")
    return token_data


def decode_id_token(id_token: str, nonce: str | None, metadata: dict | None = None) -> dict:
    """Verify the id_token signature, audience and nonce; return its claims."""
    metadata = metadata or get_metadata()
    jwks_uri = metadata.get("jwks_uri")
    if not jwks_uri:
        raise OIDCError("No jwks_uri in OIDC metadata")

    try:
        signing_key = jwt.PyJWKClient(jwks_uri).get_signing_key_from_jwt(id_token)
        claims = jwt.decode(
            id_token,
            signing_key.key,
            algorithms=["RS256"],
            audience=current_app.config["OIDC_CLIENT_ID"],
            # Multi-tenant authorities issue per-tenant issuers; the tenant is
            # matched against registered issuers at sign-in instead.
            options={"verify_iss": False, "require": ["exp", "iss", "aud"]},
        )
    except jwt.PyJWTError as e:
        logger.warning("id_token validation failed: %s", e)
        raise OIDCError(f"Invalid id_token: {e}") from e

    if nonce is not None and claims.get("nonce") != nonce:
        raise OIDCError("id_token nonce mismatch")
    return claims


def build_end_session_url(post_logout_redirect_uri: str | None = None) -> str | None:
    """Provider sign-out URL, or None when the provider has no end_session_endpoint."""
    try:
        metadata = get_metadata()
    except OIDCError:
        return None
    endpoint = metadata.get("end_session_endpoint")
    if not endpoint:
        return None
    if post_logout_redirect_uri:
        return f"{endpoint}?{urlencode({'post_logout_redirect_uri': post_logout_redirect_uri})}"
    return endpoint
