"""
Shared pytest fixtures for the Multi-Tenant Surveys test suite.

Provides:
    - app: survey REST API application (session-scoped)
    - web_app: web front-end application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client / web_client: Flask test clients (function-scoped)
    - owner / colleague / outsider: users in tenant A, tenant A, tenant B
    - make_user / make_survey / bearer: builders for ad-hoc data and tokens
"""

import uuid

import pytest

from surveys import create_api_app, create_web_app
from surveys.models import db as _db
from surveys.models.survey import Question, Survey
from surveys.services import tenant_service
from surveys.services.token_service import generate_access_token

ISSUER_A = "https://login.microsoftonline.com/11111111-aaaa-4aaa-aaaa-111111111111/v2.0"
ISSUER_B = "https://login.microsoftonline.com/22222222-bbbb-4bbb-bbbb-222222222222/v2.0"

CREATOR = ("SurveyCreator",)
ADMIN = ("SurveyAdmin",)

CSRF = "test-csrf-token"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the survey API once per test session."""
    return create_api_app("testing")


@pytest.fixture(scope="session")
def web_app():
    """Create the web front-end once per test session."""
    return create_web_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app, web_app):
    """Create all tables at session start, drop at end."""
    for application in (app, web_app):
        with application.app_context():
            _db.create_all()
    yield
    for application in (app, web_app):
        with application.app_context():
            _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, web_app, _setup_db):
    """Per-test: open API app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
    with web_app.app_context():
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """API test client."""
    return app.test_client()


@pytest.fixture()
def web_client(web_app):
    """Web front-end test client."""
    return web_app.test_client()


# ── Builders ─────────────────────────────────────────────────────────────


def make_user(issuer=ISSUER_A, email="owner@contoso.com", name="Owner", object_id=None):
    """Create (or reuse) the issuer's tenant and a new user in it."""
    tenant = tenant_service.find_tenant_by_issuer(issuer) or tenant_service.create_tenant(issuer)
    user = tenant_service.create_user(tenant, object_id or str(uuid.uuid4()), name, email)
    _db.session.commit()
    return user


def make_survey(owner, title="Customer satisfaction", published=False, contributors=(), questions=()):
    survey = Survey(
        title=title,
        owner_id=owner.id,
        tenant_id=owner.tenant_id,
        published=published,
    )
    survey.contributors.extend(contributors)
    for text in questions:
        survey.questions.append(Question(text=text, type=0))
    _db.session.add(survey)
    _db.session.commit()
    return survey


def token_claims(user, roles=()):
    return {
        "iss": user.tenant.issuer_value,
        "oid": user.object_id,
        "email": user.email,
        "name": user.display_name,
        "roles": list(roles),
    }


def bearer(user, roles=()):
    """Authorization header for ``user`` holding ``roles``."""
    return {"Authorization": f"Bearer {generate_access_token(token_claims(user, roles))}"}


def sign_in_web(web_client, user_id=1, tenant_id=1, roles=CREATOR, email="owner@contoso.com"):
    """Put a signed-in session (claims, API token, CSRF token) on the web client."""
    with web_client.session_transaction() as sess:
        sess["claims"] = {
            "iss": ISSUER_A,
            "oid": "00000000-0000-0000-0000-000000000001",
            "email": email,
            "name": "Owner",
            "roles": list(roles),
            "survey_userid": user_id,
            "survey_tenantid": tenant_id,
        }
        sess["access_token"] = "api-token"
        sess["csrf_token"] = CSRF


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def owner():
    return make_user(ISSUER_A, "owner@contoso.com", "Owner")


@pytest.fixture()
def colleague(owner):
    return make_user(ISSUER_A, "colleague@contoso.com", "Colleague")


@pytest.fixture()
def outsider():
    return make_user(ISSUER_B, "outsider@fabrikam.com", "Outsider")


@pytest.fixture()
def survey(owner):
    return make_survey(owner, questions=["How did we do?"])
