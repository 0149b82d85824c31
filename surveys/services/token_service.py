"""
Token Service — bearer token verification for the REST API.

Two modes, chosen by configuration:
    OIDC_JWKS_URL set  → RS256 tokens issued by the identity provider,
                          verified against its published signing keys.
    OIDC_JWKS_URL unset → HS256 tokens signed with JWT_SECRET_KEY
                          (development and tests only).

API_AUDIENCE, when set, is enforced in both modes.

Token payload (HS256 mode, mirrors the IdP claim names):
{
    "iss": <issuer>, "tid": <idp tenant id>, "oid": <idp object id>,
    "email": ..., "name": ..., "roles": ["SurveyCreator", ...],
    "iat": <issued_at>, "exp": <expires_at>, "jti": <unique_id>
}
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


# ─── Defaults ────────────────────────────────────────────────
DEFAULT_ACCESS_EXPIRES = 3600      # 1 hour
HS_ALGORITHM = "HS256"
RS_ALGORITHMS = ["RS256"]

# jwks_url → PyJWKClient (the client caches keys itself)
_jwk_clients: dict[str, jwt.PyJWKClient] = {}


def _get_secret():
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_jwk_client(jwks_url: str) -> jwt.PyJWKClient:
    client = _jwk_clients.get(jwks_url)
    if client is None:
        client = jwt.PyJWKClient(jwks_url)
        _jwk_clients[jwks_url] = client
    return client


# ═══════════════════════════════════════════════════════════════
# Token Generation (HS256 mode)
# ═══════════════════════════════════════════════════════════════
def generate_access_token(claims: dict, expires_in: int | None = None) -> str:
    """Sign ``claims`` as a short-lived HS256 access token.

    Used by the web app in development to call the API without an IdP
    issued API token, and by tests.
    """
    now = datetime.now(timezone.utc)
    expires = expires_in or current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)
    payload = {
        k: v for k, v in claims.items()
        if k not in ("iat", "exp", "nbf", "jti", "aud", "nonce")
    }
    payload.update({
        "iat": now,
        "exp": now + timedelta(seconds=expires),
        "jti": str(uuid.uuid4()),
    })
    audience = current_app.config.get("API_AUDIENCE")
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, _get_secret(), algorithm=HS_ALGORITHM)


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_access_token(token: str) -> dict:
    """
    Decode and verify a bearer token.

    Returns the claims dict on success.
    Raises jwt exceptions on failure (ExpiredSignatureError, InvalidTokenError, ...)
    """
    audience = current_app.config.get("API_AUDIENCE")
    options = {"require": ["exp", "iss"]}
    if not audience:
        options["verify_aud"] = False

    jwks_url = current_app.config.get("OIDC_JWKS_URL")
    if jwks_url:
        signing_key = _get_jwk_client(jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(
            token, signing_key.key, algorithms=RS_ALGORITHMS,
            audience=audience, options=options,
        )

    return jwt.decode(
        token, _get_secret(), algorithms=[HS_ALGORITHM],
        audience=audience, options=options,
    )
