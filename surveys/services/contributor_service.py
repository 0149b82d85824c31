"""
Contributor Service — invitations and their conversion into contributors.

Flow:
    1. A survey owner/contributor invites an e-mail address
       (``add_contributor_request``).
    2. When the invited user next lists their surveys, the web app calls
       ``process_pending_contributor_requests`` first: every request
       addressed to the user's e-mail becomes a SurveyContributor row and
       the request is deleted.

Requests for surveys of another tenant are left pending; a user can only
contribute to surveys inside their own tenant.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func

from surveys.core.exceptions import ConflictError, ValidationError
from surveys.models import db
from surveys.models.survey import ContributorRequest
from surveys.models.tenant import User
from surveys.security.claims import SurveyPrincipal
from surveys.services import contributor_request_store, survey_store

logger = logging.getLogger(__name__)


def normalize_email(email_address: str) -> str:
    """Validate syntax and return the normalized address. Raises ValidationError."""
    email_address = (email_address or "").strip()
    if not email_address:
        raise ValidationError("email_address is required", details={"email_address": "required"})
    try:
        return validate_email(email_address, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(str(exc), details={"email_address": "invalid"}) from exc


def add_contributor_request(survey, email_address: str) -> ContributorRequest:
    """Record an invitation for ``email_address`` to contribute to ``survey``.

    Raises:
        ValidationError: missing or malformed e-mail address.
        ConflictError: the address already belongs to a contributor or was
            already invited (both case-insensitive).
    """
    email = normalize_email(email_address)
    if any((u.email or "").lower() == email.lower() for u in survey.contributors):
        raise ConflictError(resource="SurveyContributor", field="email_address", value=email)

    existing = ContributorRequest.query.filter(
        ContributorRequest.survey_id == survey.id,
        func.lower(ContributorRequest.email_address) == email.lower(),
    ).first()
    if existing is not None:
        raise ConflictError(resource="ContributorRequest", field="email_address", value=email)

    req = ContributorRequest(survey_id=survey.id, email_address=email)
    contributor_request_store.add_request(req)
    logger.info(
        "Contributor requested",
        extra={"survey_id": survey.id, "tenant_id": survey.tenant_id},
    )
    return req


def get_contributors(survey) -> dict:
    """ContributorsDTO for ``survey``."""
    return {
        "survey_id": survey.id,
        "contributors": [u.to_dict() for u in survey.contributors],
        "requests": [r.to_dict() for r in contributor_request_store.get_requests_for_survey(survey.id)],
    }


def process_pending_contributor_requests(principal: SurveyPrincipal) -> int:
    """Convert the caller's pending invitations into contributor grants.

    Returns the number of requests converted. The caller commits.
    """
    requests = contributor_request_store.get_requests_for_user(principal.email)
    if not requests:
        return 0

    user = db.session.get(User, principal.user_id)
    converted = 0
    for req in requests:
        survey = req.survey
        if survey.tenant_id != principal.tenant_id:
            logger.info(
                "Contributor request left pending: survey belongs to another tenant",
                extra={"survey_id": survey.id, "tenant_id": principal.tenant_id},
            )
            continue
        survey_store.add_contributor(survey, user)
        contributor_request_store.remove_request(req)
        converted += 1

    logger.info(
        "Processed pending contributor requests: %d converted", converted,
        extra={"user_id": principal.user_id, "tenant_id": principal.tenant_id},
    )
    return converted
