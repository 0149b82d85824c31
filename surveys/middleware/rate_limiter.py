"""
Rate limiting configuration.

The Limiter instance is created in surveys/__init__.py with no default
limits; this module applies limits per blueprint once blueprints are
registered.

Usage:
    from surveys.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

API_LIMIT = "120/minute"
SIGN_IN_LIMIT = "20/minute"
WEB_LIMIT = "300/minute"


def rate_limit_key():
    """Tenant-scoped key for authenticated API callers, else remote IP."""
    principal = getattr(g, "current_user", None)
    if principal is not None:
        return f"tenant:{principal.tenant_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to registered blueprints.

    Limits:
        - Survey / question API:   120/minute per tenant
        - Account (sign-in flow):  20/minute per IP
        - Web views:               300/minute per IP
        - Health check:            exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("survey_api", "question_api"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(API_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("account")
    if bp:
        limiter.limit(SIGN_IN_LIMIT)(bp)

    for bp_name in ("survey", "question"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WEB_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — API: %s, sign-in: %s, web: %s",
                    API_LIMIT, SIGN_IN_LIMIT, WEB_LIMIT)
