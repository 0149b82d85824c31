"""
Multi-Tenant Surveys
Survey views — server-rendered pages backed by the survey API client.

Routes:
    /survey/                              index (my surveys)
    /survey/tenant                        list_per_tenant
    /survey/published                     published
    /survey/create                        create         GET, POST   (creator policy)
    /survey/<id>                          details
    /survey/<id>/edit                     edit
    /survey/<id>/edit-title               edit_title     GET, POST
    /survey/<id>/delete                   delete         GET, POST
    /survey/<id>/contributors             contributors
    /survey/<id>/request-contributor      request_contributor GET, POST
    /survey/<id>/publish                  publish        GET, POST
    /survey/<id>/unpublish                unpublish      GET, POST
"""

import logging

from email_validator import EmailNotValidError, validate_email
from flask import Blueprint, redirect, render_template, request, url_for

from surveys.auth import current_principal, login_required, policy_required
from surveys.blueprints.web_errors import handle_api_errors, render_error
from surveys.integrations.survey_api import ApiForbiddenError, survey_client
from surveys.security.policy import PolicyNames, evaluate_policy

logger = logging.getLogger(__name__)

survey_bp = Blueprint("survey", __name__, url_prefix="/survey")

RESOURCE = "survey"


def _operation_extra(action):
    principal = current_principal()
    return {
        "action": f"{__name__}.{action}",
        "object_id": principal.object_id,
        "issuer": principal.issuer,
        "user_id": principal.user_id,
    }


# ═══════════════════════════════════════════════════════════════════════════
#  LISTINGS
# ═══════════════════════════════════════════════════════════════════════════

@survey_bp.route("/", methods=["GET"])
@login_required
@handle_api_errors(RESOURCE)
def index():
    # Pending invitations must become contributor grants before listing
    survey_client.process_pending_contributor_requests()

    principal = current_principal()
    logger.info("GetSurveysForUser operation started", extra=_operation_extra("index"))
    result = survey_client.get_surveys_for_user(principal.user_id)
    is_user_creator = evaluate_policy(principal, PolicyNames.REQUIRE_SURVEY_CREATOR)
    logger.info("GetSurveysForUser operation succeeded", extra=_operation_extra("index"))
    return render_template("survey/index.html", surveys=result, is_user_creator=is_user_creator)


@survey_bp.route("/tenant", methods=["GET"])
@login_required
@handle_api_errors(RESOURCE)
def list_per_tenant():
    principal = current_principal()
    surveys = survey_client.get_surveys_for_tenant(principal.tenant_id)
    is_user_admin = evaluate_policy(principal, PolicyNames.REQUIRE_SURVEY_ADMIN)
    return render_template("survey/list_per_tenant.html", surveys=surveys, is_user_admin=is_user_admin)


@survey_bp.route("/published", methods=["GET"])
@handle_api_errors(RESOURCE)
def published():
    surveys = survey_client.get_published_surveys()
    return render_template("survey/published.html", surveys=surveys)


# ═══════════════════════════════════════════════════════════════════════════
#  CREATE / READ / EDIT / DELETE
# ═══════════════════════════════════════════════════════════════════════════

@survey_bp.route("/create", methods=["GET", "POST"])
@policy_required(PolicyNames.REQUIRE_SURVEY_CREATOR)
@handle_api_errors(RESOURCE)
def create():
    if request.method == "GET":
        return render_template("survey/create.html", survey={"title": ""})

    survey = {"title": (request.form.get("title") or "").strip()}
    if not survey["title"]:
        return render_template("survey/create.html", survey=survey, errors=["Bad Request"]), 400
    try:
        result = survey_client.create_survey(survey)
    except ApiForbiddenError:
        return render_template("survey/create.html", survey=survey, forbidden=True), 403
    return redirect(url_for("survey.edit", survey_id=result["id"]))


@survey_bp.route("/<int:survey_id>", methods=["GET"])
@login_required
@handle_api_errors(RESOURCE)
def details(survey_id):
    survey = survey_client.get_survey(survey_id)
    return render_template("survey/details.html", survey=survey)


@survey_bp.route("/<int:survey_id>/edit", methods=["GET"])
@login_required
@handle_api_errors(RESOURCE)
def edit(survey_id):
    survey = survey_client.get_survey(survey_id)
    if survey.get("published"):
        return render_error(
            "The survey is already published! You need to unpublish it in order to edit."
        )
    return render_template("survey/edit.html", survey=survey)


@survey_bp.route("/<int:survey_id>/edit-title", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def edit_title(survey_id):
    if request.method == "GET":
        survey = survey_client.get_survey(survey_id)
        survey["existing_title"] = survey.get("title")
        return render_template("survey/edit_title.html", survey=survey)

    # Bind only id, title and existing_title
    model = {
        "id": survey_id,
        "title": (request.form.get("title") or "").strip(),
        "existing_title": request.form.get("existing_title") or "",
    }
    if not model["title"]:
        return render_template("survey/edit_title.html", survey=model, errors=["Bad Request"]), 400
    try:
        survey_client.update_survey(model)
    except ApiForbiddenError:
        return render_template("survey/edit_title.html", survey=model, forbidden=True), 403
    return redirect(url_for("survey.edit", survey_id=survey_id))


@survey_bp.route("/<int:survey_id>/delete", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def delete(survey_id):
    survey = survey_client.get_survey(survey_id)
    if request.method == "GET":
        return render_template("survey/delete.html", survey=survey)

    result = survey_client.delete_survey(survey_id)
    return render_template(
        "survey/delete_result.html", survey=result,
        message="The following survey has been deleted.",
    )


# ═══════════════════════════════════════════════════════════════════════════
#  CONTRIBUTORS
# ═══════════════════════════════════════════════════════════════════════════

@survey_bp.route("/<int:survey_id>/contributors", methods=["GET"])
@login_required
@handle_api_errors(RESOURCE)
def contributors(survey_id):
    result = survey_client.get_survey_contributors(survey_id)
    return render_template("survey/contributors.html", contributors=result, survey_id=survey_id)


@survey_bp.route("/<int:survey_id>/request-contributor", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def request_contributor(survey_id):
    if request.method == "GET":
        survey_client.get_survey(survey_id)
        return render_template("survey/request_contributor.html", survey_id=survey_id)

    email = (request.form.get("email_address") or "").strip()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return redirect(url_for("survey.contributors", survey_id=survey_id))

    existing = survey_client.get_survey_contributors(survey_id)
    wanted = email.casefold()
    if any((c.get("email") or "").casefold() == wanted for c in existing.get("contributors", [])):
        return render_template(
            "survey/request_contributor.html", survey_id=survey_id,
            message=f"{email} is already a contributor",
        )
    if any((r.get("email_address") or "").casefold() == wanted for r in existing.get("requests", [])):
        return render_template(
            "survey/request_contributor.html", survey_id=survey_id,
            message=f"{email} has already been requested before",
        )

    survey_client.add_contributor_request(survey_id, email)
    result = survey_client.get_survey_contributors(survey_id)
    return render_template(
        "survey/contributors.html", contributors=result, survey_id=survey_id,
        message=f"Contribution Requested for {email}",
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PUBLISH / UNPUBLISH
# ═══════════════════════════════════════════════════════════════════════════

@survey_bp.route("/<int:survey_id>/publish", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def publish(survey_id):
    survey = survey_client.get_survey(survey_id)
    if survey.get("published"):
        return render_template(
            "survey/publish_result.html", survey=survey,
            errors=["The survey is already published"],
        )
    if request.method == "GET":
        return render_template("survey/publish.html", survey=survey)

    result = survey_client.publish_survey(survey_id)
    return render_template(
        "survey/publish_result.html", survey=result,
        message="The following survey has been published.",
    )


@survey_bp.route("/<int:survey_id>/unpublish", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def unpublish(survey_id):
    survey = survey_client.get_survey(survey_id)
    if not survey.get("published"):
        return render_template(
            "survey/unpublish_result.html", survey=survey,
            errors=["The survey is already unpublished"],
        )
    if request.method == "GET":
        return render_template("survey/unpublish.html", survey=survey)

    result = survey_client.unpublish_survey(survey_id)
    return render_template(
        "survey/unpublish_result.html", survey=result,
        message="The following survey has been unpublished.",
    )
