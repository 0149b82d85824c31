"""
JWT Auth Middleware — resolves the API caller from ``Authorization: Bearer``.

Sets ``g.current_user`` to a ``SurveyPrincipal`` when the token is valid and
its issuer/object id map onto a registered tenant and user; otherwise
``g.current_user`` stays None and protected views answer 401.
"""

import logging

import jwt as pyjwt
from flask import g, request

from surveys.services.tenant_service import resolve_principal
from surveys.services.token_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.jwt_claims = None

        path = request.path
        if request.method == "OPTIONS":
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]
        try:
            claims = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired bearer token on %s", path)
            return
        except pyjwt.PyJWTError as exc:
            logger.warning("Invalid bearer token on %s: %s", path, exc)
            return

        g.jwt_claims = claims
        g.current_user = resolve_principal(claims)
        if g.current_user is None:
            logger.warning("Bearer token does not map onto a registered tenant/user", extra={"path": path})
