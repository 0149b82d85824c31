"""
Multi-Tenant Surveys
Blueprint registry and helpers shared by the API blueprints.
"""

import logging

from flask import current_app, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from surveys.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from surveys.models import db
from surveys.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def page_args(max_page_size=100):
    """Read paging from the query string.

    Query params:
        pageIndex — zero based page number (default 0)
        pageSize  — items per page (default DEFAULT_PAGE_SIZE, capped at max_page_size)

    Returns:
        (page_index, page_size)
    """
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    try:
        page_index = max(int(request.args.get("pageIndex", 0)), 0)
    except (ValueError, TypeError):
        page_index = 0
    try:
        page_size = min(max(int(request.args.get("pageSize", default_size)), 1), max_page_size)
    except (ValueError, TypeError):
        page_size = default_size
    return page_index, page_size


def commit_or_error():
    """Commit the session; on failure roll back and return an error response.

    Returns None on success.
    """
    try:
        db.session.commit()
    except IntegrityError:
        logger.warning("Database commit rejected by a constraint", exc_info=True)
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, "Conflicting change, the record already exists")
    except SQLAlchemyError:
        logger.exception("Database commit failed")
        db.session.rollback()
        return api_error(E.DATABASE, "Database error")
    return None


def register_api_error_handlers(bp):
    """Attach the service-exception → JSON mapping to an API blueprint."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("%s", error)
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), status=error.status, details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        return api_error(E.FORBIDDEN, "Permission denied", details={"operation": error.operation})

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        db.session.rollback()
        return api_error(E.INTERNAL, "Internal server error")
