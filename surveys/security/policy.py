"""
Authorization — role policies and the per-survey resource handler.

Two layers:
    1. Policies (``RequireSurveyCreator``, ``RequireSurveyAdmin``) are role
       checks on the principal alone, applied with ``@require_policy``.
    2. ``authorize_survey`` decides whether a principal may perform an
       operation on one specific survey, from tenant, role, ownership and
       contributor membership.

Permission derivation (per user, per survey):
    same tenant + SurveyAdmin   → every operation
    same tenant + SurveyCreator → Creator, otherwise Reader
    owner                       → Owner
    listed contributor          → Contributor

Operation rules:
    Create                  ← Creator
    Read                    ← Creator | Reader | Contributor | Owner
    Update                  ← Contributor | Owner
    Delete/Publish/UnPublish ← Owner
"""

import enum
import functools
import logging

from flask import g

from surveys.core.exceptions import ForbiddenError
from surveys.security.claims import Roles, SurveyPrincipal
from surveys.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Policies
# ═══════════════════════════════════════════════════════════════
class PolicyNames:
    REQUIRE_SURVEY_CREATOR = "RequireSurveyCreator"
    REQUIRE_SURVEY_ADMIN = "RequireSurveyAdmin"


_POLICY_ROLES = {
    PolicyNames.REQUIRE_SURVEY_CREATOR: {Roles.SURVEY_CREATOR, Roles.SURVEY_ADMIN},
    PolicyNames.REQUIRE_SURVEY_ADMIN: {Roles.SURVEY_ADMIN},
}


def evaluate_policy(principal: SurveyPrincipal | None, policy_name: str) -> bool:
    if principal is None:
        return False
    try:
        allowed = _POLICY_ROLES[policy_name]
    except KeyError:
        raise ValueError(f"Unknown policy: {policy_name}") from None
    return any(principal.is_in_role(r) for r in allowed)


def require_policy(policy_name: str):
    """
    Decorator for API views: 401 without a principal, 403 when the policy fails.

    Usage:
        @bp.route("/surveys", methods=["POST"])
        @require_policy(PolicyNames.REQUIRE_SURVEY_CREATOR)
        def create_survey(): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            principal = getattr(g, "current_user", None)
            if principal is None:
                return api_error(E.UNAUTHENTICATED, "Authentication required")
            if not evaluate_policy(principal, policy_name):
                logger.warning(
                    "User %s denied: policy '%s' on %s",
                    principal.user_id, policy_name, f.__name__,
                )
                return api_error(E.FORBIDDEN, "Permission denied", details={"policy": policy_name})
            return f(*args, **kwargs)
        return decorated
    return decorator


def require_authenticated(f):
    """Decorator for API views that only need a resolved principal."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user", None) is None:
            return api_error(E.UNAUTHENTICATED, "Authentication required")
        return f(*args, **kwargs)
    return decorated


# ═══════════════════════════════════════════════════════════════
# Survey resource authorization
# ═══════════════════════════════════════════════════════════════
class SurveyOperation(str, enum.Enum):
    CREATE = "Create"
    READ = "Read"
    UPDATE = "Update"
    DELETE = "Delete"
    PUBLISH = "Publish"
    UNPUBLISH = "UnPublish"


class UserPermission(str, enum.Enum):
    CREATOR = "Creator"
    READER = "Reader"
    OWNER = "Owner"
    CONTRIBUTOR = "Contributor"


_OPERATION_RULES = {
    SurveyOperation.CREATE: {UserPermission.CREATOR},
    SurveyOperation.READ: {
        UserPermission.CREATOR, UserPermission.READER,
        UserPermission.CONTRIBUTOR, UserPermission.OWNER,
    },
    SurveyOperation.UPDATE: {UserPermission.CONTRIBUTOR, UserPermission.OWNER},
    SurveyOperation.DELETE: {UserPermission.OWNER},
    SurveyOperation.PUBLISH: {UserPermission.OWNER},
    SurveyOperation.UNPUBLISH: {UserPermission.OWNER},
}


def survey_permissions(principal: SurveyPrincipal, survey) -> set:
    """Permissions the principal holds on ``survey`` (admin short-circuit excluded)."""
    perms = set()
    if survey.tenant_id == principal.tenant_id:
        if principal.is_in_role(Roles.SURVEY_CREATOR):
            perms.add(UserPermission.CREATOR)
        else:
            perms.add(UserPermission.READER)
    if survey.owner_id == principal.user_id:
        perms.add(UserPermission.OWNER)
    if survey.has_contributor(principal.user_id):
        perms.add(UserPermission.CONTRIBUTOR)
    return perms


def is_authorized(principal: SurveyPrincipal | None, survey, operation: SurveyOperation) -> bool:
    if principal is None:
        return False
    if survey.tenant_id == principal.tenant_id and principal.is_survey_admin:
        return True
    return bool(survey_permissions(principal, survey) & _OPERATION_RULES[operation])


def authorize_survey(principal: SurveyPrincipal | None, survey, operation: SurveyOperation) -> None:
    """Raise ``ForbiddenError`` unless the principal may perform ``operation``."""
    if is_authorized(principal, survey, operation):
        return
    logger.warning(
        "Survey authorization failed",
        extra={
            "action": operation.value,
            "survey_id": survey.id,
            "user_id": principal.user_id if principal else None,
            "tenant_id": principal.tenant_id if principal else None,
        },
    )
    raise ForbiddenError(operation.value, resource="Survey", resource_id=survey.id)
