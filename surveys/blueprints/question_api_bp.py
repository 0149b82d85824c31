"""
Multi-Tenant Surveys
Question API blueprint — questions are authorized through their parent survey.

Endpoints summary:
    /api/v1/surveys/<survey_id>/questions   POST
    /api/v1/questions/<id>                  GET, PUT, DELETE
"""

import logging

from flask import Blueprint, g, jsonify, request

from surveys.blueprints import commit_or_error, register_api_error_handlers
from surveys.models.survey import QUESTION_TYPES, Question, QuestionType
from surveys.security.policy import SurveyOperation, authorize_survey, require_authenticated
from surveys.services import question_store, survey_store
from surveys.utils.errors import E, api_error

logger = logging.getLogger(__name__)

question_api_bp = Blueprint("question_api", __name__, url_prefix="/api/v1")
register_api_error_handlers(question_api_bp)


def _parse_question(data):
    """Return (fields, error_response)."""
    text = (data.get("text") or "").strip()
    if not text:
        return None, api_error(E.VALIDATION_REQUIRED, "text is required")
    try:
        qtype = int(data.get("type", QuestionType.SIMPLE_TEXT))
    except (TypeError, ValueError):
        qtype = None
    if qtype not in QUESTION_TYPES:
        return None, api_error(
            E.VALIDATION_INVALID, "type is invalid",
            details={"allowed": sorted(QUESTION_TYPES)},
        )
    return {
        "text": text,
        "type": qtype,
        "possible_answers": data.get("possible_answers") or None,
    }, None


@question_api_bp.route("/questions/<int:question_id>", methods=["GET"])
@require_authenticated
def get_question(question_id):
    question = question_store.get_question_or_404(question_id)
    authorize_survey(g.current_user, question.survey, SurveyOperation.READ)
    return jsonify(question.to_dict())


@question_api_bp.route("/surveys/<int:survey_id>/questions", methods=["POST"])
@require_authenticated
def create_question(survey_id):
    survey = survey_store.get_survey_or_404(survey_id)
    authorize_survey(g.current_user, survey, SurveyOperation.UPDATE)

    fields, err = _parse_question(request.get_json(silent=True) or {})
    if err:
        return err

    question = Question(survey_id=survey.id, **fields)
    question_store.add_question(question)
    err = commit_or_error()
    if err:
        return err
    return jsonify(question.to_dict()), 201


@question_api_bp.route("/questions/<int:question_id>", methods=["PUT"])
@require_authenticated
def update_question(question_id):
    data = request.get_json(silent=True) or {}
    if data.get("id") != question_id:
        return api_error(E.VALIDATION_INVALID, "id in body does not match the URL")

    question = question_store.get_question_or_404(question_id)
    authorize_survey(g.current_user, question.survey, SurveyOperation.UPDATE)

    fields, err = _parse_question(data)
    if err:
        return err
    for key, val in fields.items():
        setattr(question, key, val)
    question_store.update_question(question)
    err = commit_or_error()
    if err:
        return err
    return jsonify(question.to_dict())


@question_api_bp.route("/questions/<int:question_id>", methods=["DELETE"])
@require_authenticated
def delete_question(question_id):
    question = question_store.get_question_or_404(question_id)
    authorize_survey(g.current_user, question.survey, SurveyOperation.UPDATE)
    payload = question.to_dict()
    question_store.delete_question(question)
    err = commit_or_error()
    if err:
        return err
    return jsonify(payload)
