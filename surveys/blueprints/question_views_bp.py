"""
Multi-Tenant Surveys
Question views. Every successful POST returns to the parent survey's edit page.

Routes:
    /survey/<survey_id>/question/create   create  GET, POST
    /question/<id>/edit                   edit    GET, POST
    /question/<id>/delete                 delete  GET, POST
"""

import logging

from flask import Blueprint, redirect, render_template, request, url_for

from surveys.auth import login_required
from surveys.blueprints.web_errors import handle_api_errors
from surveys.integrations.survey_api import ApiForbiddenError, question_client
from surveys.models.survey import QUESTION_TYPES, QuestionType

logger = logging.getLogger(__name__)

question_bp = Blueprint("question", __name__)

RESOURCE = "question"

QUESTION_TYPE_CHOICES = [
    (QuestionType.SIMPLE_TEXT.value, "Simple text"),
    (QuestionType.MULTIPLE_CHOICE.value, "Multiple choice"),
    (QuestionType.FIVE_STARS.value, "Five stars"),
]


def _bind_question(**fixed):
    """Question dict from the posted form plus ``fixed`` values; (question, valid)."""
    try:
        qtype = int(request.form.get("type", QuestionType.SIMPLE_TEXT.value))
    except (TypeError, ValueError):
        qtype = None
    question = {
        "text": (request.form.get("text") or "").strip(),
        "type": qtype,
        "possible_answers": request.form.get("possible_answers") or None,
        **fixed,
    }
    valid = bool(question["text"]) and qtype in QUESTION_TYPES
    return question, valid


def _render_form(template, question, status=200, **context):
    return render_template(template, question=question, type_choices=QUESTION_TYPE_CHOICES, **context), status


@question_bp.route("/survey/<int:survey_id>/question/create", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def create(survey_id):
    if request.method == "GET":
        return _render_form("question/create.html", {"survey_id": survey_id, "type": 0})

    question, valid = _bind_question(survey_id=survey_id)
    if not valid:
        return _render_form("question/create.html", question, 400, errors=["Bad Request"])
    try:
        question_client.create_question(question)
    except ApiForbiddenError:
        return _render_form("question/create.html", question, 403, forbidden=True)
    return redirect(url_for("survey.edit", survey_id=survey_id))


@question_bp.route("/question/<int:question_id>/edit", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def edit(question_id):
    if request.method == "GET":
        question = question_client.get_question(question_id)
        return _render_form("question/edit.html", question)

    try:
        survey_id = int(request.form.get("survey_id", ""))
    except ValueError:
        survey_id = None
    question, valid = _bind_question(id=question_id, survey_id=survey_id)
    if not valid or survey_id is None:
        return _render_form("question/edit.html", question, 400, errors=["Bad Request"])
    try:
        question_client.update_question(question)
    except ApiForbiddenError:
        return _render_form("question/edit.html", question, 403, forbidden=True)
    return redirect(url_for("survey.edit", survey_id=survey_id))


@question_bp.route("/question/<int:question_id>/delete", methods=["GET", "POST"])
@login_required
@handle_api_errors(RESOURCE)
def delete(question_id):
    if request.method == "GET":
        question = question_client.get_question(question_id)
        return render_template("question/delete.html", question=question)

    question = {"id": question_id, "survey_id": request.form.get("survey_id", type=int)}
    try:
        deleted = question_client.delete_question(question_id)
    except ApiForbiddenError:
        return render_template("question/delete.html", question=question, forbidden=True), 403
    survey_id = question["survey_id"] or (deleted or {}).get("survey_id")
    if survey_id is None:
        return redirect(url_for("survey.index"))
    return redirect(url_for("survey.edit", survey_id=survey_id))
