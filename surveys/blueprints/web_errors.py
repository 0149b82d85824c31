"""
Service-client failure → HTML error view mapping for the web blueprints.

    ApiUnauthorizedError → session cleared, redirect to sign-in (token expired)
    ApiForbiddenError → "Forbidden Access to the <resource>"   (403)
    ApiNotFoundError  → "The <resource> can not be found"      (404)
    anything else     → "Unexpected Error"                     (500, logged)

Views that re-render a form on 403 catch ApiForbiddenError themselves
before the decorator sees it.
"""

import functools
import logging

from flask import redirect, render_template, request, url_for
from werkzeug.exceptions import HTTPException

from surveys.auth import sign_out_session
from surveys.integrations.survey_api import ApiForbiddenError, ApiNotFoundError, ApiUnauthorizedError

logger = logging.getLogger(__name__)


def render_error(message, status=200, **context):
    return render_template("error.html", message=message, **context), status


def forbidden(resource):
    return render_error(f"Forbidden Access to the {resource}", 403)


def not_found(resource):
    return render_error(f"The {resource} can not be found", 404)


def handle_api_errors(resource):
    """Decorator applying the failure mapping above to a view."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ApiUnauthorizedError:
                logger.info("API token rejected; signing out endpoint=%s", request.endpoint)
                sign_out_session()
                return redirect(url_for("account.sign_in", next=request.full_path))
            except ApiForbiddenError:
                return forbidden(resource)
            except ApiNotFoundError:
                return not_found(resource)
            except HTTPException:
                raise
            except Exception:
                logger.exception("Unexpected error in view endpoint=%s", request.endpoint)
                return render_error("Unexpected Error", 500)
        return decorated
    return decorator
