"""Question Store — persistence operations for survey questions. Callers commit."""

from surveys.core.exceptions import NotFoundError
from surveys.models import db
from surveys.models.survey import Question


def get_question(question_id: int) -> Question | None:
    return db.session.get(Question, question_id)


def get_question_or_404(question_id: int) -> Question:
    question = get_question(question_id)
    if question is None:
        raise NotFoundError(resource="Question", resource_id=question_id)
    return question


def add_question(question: Question) -> Question:
    db.session.add(question)
    db.session.flush()
    return question


def update_question(question: Question) -> Question:
    db.session.add(question)
    db.session.flush()
    return question


def delete_question(question: Question) -> Question:
    db.session.delete(question)
    db.session.flush()
    return question
