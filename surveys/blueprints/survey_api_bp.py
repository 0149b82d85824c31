"""
Multi-Tenant Surveys
Survey API blueprint — survey CRUD, publishing and contributor invitations.

Endpoints summary:
    SURVEY   /api/v1/surveys                                   POST
             /api/v1/surveys/<id>                              GET, PUT, DELETE
             /api/v1/surveys/<id>/publish                      PUT
             /api/v1/surveys/<id>/unpublish                    PUT
             /api/v1/surveys/published                         GET   (anonymous)

    LISTINGS /api/v1/users/<user_id>/surveys                   GET   (caller only)
             /api/v1/tenants/<tenant_id>/surveys               GET   (caller's tenant only)

    CONTRIB  /api/v1/surveys/<id>/contributors                 GET
             /api/v1/surveys/<id>/contributorrequests          POST
             /api/v1/surveys/processpendingcontributorrequests POST
"""

import logging

from flask import Blueprint, g, jsonify, request

from surveys.blueprints import commit_or_error, page_args, register_api_error_handlers
from surveys.models.survey import Survey
from surveys.security.policy import (
    PolicyNames,
    SurveyOperation,
    authorize_survey,
    require_authenticated,
    require_policy,
)
from surveys.services import contributor_service, survey_store
from surveys.utils.errors import E, api_error

logger = logging.getLogger(__name__)

survey_api_bp = Blueprint("survey_api", __name__, url_prefix="/api/v1")
register_api_error_handlers(survey_api_bp)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _summaries(surveys):
    return [s.to_summary() for s in surveys]


def _log_extra(action, object_id):
    return {
        "action": action,
        "object_id": object_id,
        "user_id": g.current_user.user_id,
        "tenant_id": g.current_user.tenant_id,
        "issuer": g.current_user.issuer,
    }


# ═══════════════════════════════════════════════════════════════════════════
#  SURVEY CRUD
# ═══════════════════════════════════════════════════════════════════════════

@survey_api_bp.route("/surveys/<int:survey_id>", methods=["GET"])
@require_authenticated
def get_survey(survey_id):
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.READ)
    return jsonify(survey.to_dict())


@survey_api_bp.route("/surveys", methods=["POST"])
@require_policy(PolicyNames.REQUIRE_SURVEY_CREATOR)
def create_survey():
    data = request.get_json(silent=True) or {}
    title = (data.get("title") or "").strip()
    if not title:
        return api_error(E.VALIDATION_REQUIRED, "title is required")

    survey = Survey(
        title=title,
        owner_id=g.current_user.user_id,
        tenant_id=g.current_user.tenant_id,
        published=False,
    )
    authorize_survey(g.current_user, survey, SurveyOperation.CREATE)
    survey_store.add_survey(survey)
    err = commit_or_error()
    if err:
        return err
    logger.info("Survey created", extra=_log_extra("CreateSurvey", survey.id))
    return jsonify(survey.to_dict()), 201


@survey_api_bp.route("/surveys/<int:survey_id>", methods=["PUT"])
@require_authenticated
def update_survey(survey_id):
    data = request.get_json(silent=True) or {}
    if data.get("id") != survey_id:
        return api_error(E.VALIDATION_INVALID, "id in body does not match the URL")
    title = (data.get("title") or "").strip()
    if not title:
        return api_error(E.VALIDATION_REQUIRED, "title is required")

    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.UPDATE)

    # Only the title is bindable; publishing has its own endpoints
    survey.title = title
    survey_store.update_survey(survey)
    err = commit_or_error()
    if err:
        return err
    return jsonify(survey.to_dict())


@survey_api_bp.route("/surveys/<int:survey_id>", methods=["DELETE"])
@require_authenticated
def delete_survey(survey_id):
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.DELETE)
    payload = survey.to_dict()
    survey_store.delete_survey(survey)
    err = commit_or_error()
    if err:
        return err
    logger.info("Survey deleted", extra=_log_extra("DeleteSurvey", survey_id))
    return jsonify(payload)


@survey_api_bp.route("/surveys/<int:survey_id>/publish", methods=["PUT"])
@require_authenticated
def publish_survey(survey_id):
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.PUBLISH)
    survey = survey_store.publish_survey(survey_id)
    err = commit_or_error()
    if err:
        return err
    return jsonify(survey.to_dict())


@survey_api_bp.route("/surveys/<int:survey_id>/unpublish", methods=["PUT"])
@require_authenticated
def unpublish_survey(survey_id):
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.UNPUBLISH)
    survey = survey_store.unpublish_survey(survey_id)
    err = commit_or_error()
    if err:
        return err
    return jsonify(survey.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  LISTINGS
# ═══════════════════════════════════════════════════════════════════════════

@survey_api_bp.route("/surveys/published", methods=["GET"])
def get_published_surveys():
    page_index, page_size = page_args()
    surveys = survey_store.get_published_surveys(page_index, page_size)
    return jsonify(_summaries(surveys))


@survey_api_bp.route("/users/<int:user_id>/surveys", methods=["GET"])
@require_authenticated
def get_surveys_for_user(user_id):
    if user_id != g.current_user.user_id:
        return api_error(E.FORBIDDEN, "Surveys of another user cannot be listed")

    logger.info("Operation started", extra=_log_extra("GetSurveysForUser", user_id))
    page_index, page_size = page_args()
    result = {
        "published": _summaries(survey_store.get_published_surveys_by_owner(user_id, page_index, page_size)),
        "own": _summaries(survey_store.get_surveys_by_owner(user_id, page_index, page_size)),
        "contribute": _summaries(survey_store.get_surveys_by_contributor(user_id, page_index, page_size)),
    }
    logger.info("Operation succeeded", extra=_log_extra("GetSurveysForUser", user_id))
    return jsonify(result)


@survey_api_bp.route("/tenants/<int:tenant_id>/surveys", methods=["GET"])
@require_authenticated
def get_surveys_for_tenant(tenant_id):
    if tenant_id != g.current_user.tenant_id:
        return api_error(E.FORBIDDEN, "Surveys of another tenant cannot be listed")

    logger.info("Operation started", extra=_log_extra("GetSurveysForTenant", tenant_id))
    page_index, page_size = page_args()
    result = {
        "published": _summaries(survey_store.get_published_surveys_by_tenant(tenant_id, page_index, page_size)),
        "unpublished": _summaries(survey_store.get_unpublished_surveys_by_tenant(tenant_id, page_index, page_size)),
    }
    logger.info("Operation succeeded", extra=_log_extra("GetSurveysForTenant", tenant_id))
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════
#  CONTRIBUTORS
# ═══════════════════════════════════════════════════════════════════════════

@survey_api_bp.route("/surveys/<int:survey_id>/contributors", methods=["GET"])
@require_authenticated
def get_survey_contributors(survey_id):
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.READ)
    return jsonify(contributor_service.get_contributors(survey))


@survey_api_bp.route("/surveys/<int:survey_id>/contributorrequests", methods=["POST"])
@require_authenticated
def add_contributor_request(survey_id):
    data = request.get_json(silent=True) or {}
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.UPDATE)

    req = contributor_service.add_contributor_request(survey, data.get("email_address"))
    err = commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict()), 201


@survey_api_bp.route("/surveys/processpendingcontributorrequests", methods=["POST"])
@require_authenticated
def process_pending_contributor_requests():
    converted = contributor_service.process_pending_contributor_requests(g.current_user)
    err = commit_or_error()
    if err:
        return err
    return jsonify({"processed": converted})
