"""Contributor Request Store — pending e-mail invitations. Callers commit."""

from sqlalchemy import func

from surveys.models import db
from surveys.models.survey import ContributorRequest


def add_request(request: ContributorRequest) -> ContributorRequest:
    db.session.add(request)
    db.session.flush()
    return request


def get_requests_for_survey(survey_id: int) -> list[ContributorRequest]:
    return (
        ContributorRequest.query.filter_by(survey_id=survey_id)
        .order_by(ContributorRequest.id)
        .all()
    )


def get_requests_for_user(email_address: str) -> list[ContributorRequest]:
    """All pending requests addressed to ``email_address`` (case-insensitive)."""
    if not email_address:
        return []
    return (
        ContributorRequest.query
        .filter(func.lower(ContributorRequest.email_address) == email_address.strip().lower())
        .order_by(ContributorRequest.id)
        .all()
    )


def remove_request(request: ContributorRequest) -> None:
    db.session.delete(request)
    db.session.flush()
