"""
Survey Store — persistence operations for surveys.

Listing functions are paged with ``page_index`` (zero based) and
``page_size``; results are ordered by id so pages are stable.

Write functions ``flush()`` only; the calling blueprint owns the commit.
"""

import logging

from surveys.core.exceptions import NotFoundError
from surveys.models import db
from surveys.models.survey import Survey, survey_contributors

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def _page(query, page_index: int, page_size: int) -> list[Survey]:
    page_index = max(int(page_index or 0), 0)
    page_size = max(int(page_size or DEFAULT_PAGE_SIZE), 1)
    return query.order_by(Survey.id).offset(page_index * page_size).limit(page_size).all()


# ── Reads ────────────────────────────────────────────────────────────────────

def get_survey(survey_id: int) -> Survey | None:
    return db.session.get(Survey, survey_id)


def get_survey_or_404(survey_id: int) -> Survey:
    survey = get_survey(survey_id)
    if survey is None:
        raise NotFoundError(resource="Survey", resource_id=survey_id)
    return survey


def get_surveys_by_owner(user_id: int, page_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> list[Survey]:
    return _page(Survey.query.filter_by(owner_id=user_id), page_index, page_size)


def get_surveys_by_contributor(user_id: int, page_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> list[Survey]:
    q = Survey.query.join(
        survey_contributors, survey_contributors.c.survey_id == Survey.id,
    ).filter(survey_contributors.c.user_id == user_id)
    return _page(q, page_index, page_size)


def get_published_surveys(page_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> list[Survey]:
    return _page(Survey.query.filter_by(published=True), page_index, page_size)


def get_published_surveys_by_owner(user_id: int, page_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> list[Survey]:
    return _page(Survey.query.filter_by(owner_id=user_id, published=True), page_index, page_size)


def get_published_surveys_by_tenant(tenant_id: int, page_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> list[Survey]:
    return _page(Survey.query.filter_by(tenant_id=tenant_id, published=True), page_index, page_size)


def get_unpublished_surveys_by_tenant(tenant_id: int, page_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> list[Survey]:
    return _page(Survey.query.filter_by(tenant_id=tenant_id, published=False), page_index, page_size)


# ── Writes ───────────────────────────────────────────────────────────────────

def add_survey(survey: Survey) -> Survey:
    db.session.add(survey)
    db.session.flush()
    return survey


def update_survey(survey: Survey) -> Survey:
    db.session.add(survey)
    db.session.flush()
    return survey


def delete_survey(survey: Survey) -> Survey:
    db.session.delete(survey)
    db.session.flush()
    return survey


def publish_survey(survey_id: int) -> Survey:
    survey = get_survey_or_404(survey_id)
    survey.published = True
    db.session.flush()
    return survey


def unpublish_survey(survey_id: int) -> Survey:
    survey = get_survey_or_404(survey_id)
    survey.published = False
    db.session.flush()
    return survey


def add_contributor(survey: Survey, user) -> bool:
    """Grant ``user`` contributor access. Returns False when already a contributor."""
    if survey.has_contributor(user.id):
        return False
    survey.contributors.append(user)
    db.session.flush()
    return True
