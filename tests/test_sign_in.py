"""
Sign-in provisioning and bearer-token resolution.

Covers:
    - tenant_service.sign_in_user: registered tenants, sign-up rules, user refresh
    - claim aliases (long schema URIs, preferred_username)
    - resolve_principal (no provisioning)
    - JWT middleware: expired / foreign-secret / unmapped tokens
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from conftest import ISSUER_A, ISSUER_B, bearer, make_user

from surveys.models import db
from surveys.models.tenant import Tenant, User
from surveys.security.claims import SurveyPrincipal
from surveys.services import tenant_service
from surveys.services.tenant_service import SignInError, SignUpNotAllowedError, TenantNotRegisteredError


def id_claims(issuer=ISSUER_A, oid="oid-1", email="ann@contoso.com", name="Ann", roles=()):
    return {"iss": issuer, "oid": oid, "email": email, "name": name, "roles": list(roles)}


class TestSignInUser:
    def test_unknown_tenant_rejected(self):
        with pytest.raises(TenantNotRegisteredError):
            tenant_service.sign_in_user(id_claims())
        assert Tenant.query.count() == 0

    def test_sign_up_requires_admin(self):
        with pytest.raises(SignUpNotAllowedError):
            tenant_service.sign_in_user(id_claims(roles=["SurveyCreator"]), signing_up=True)

    def test_admin_sign_up_registers_tenant_and_user(self):
        result = tenant_service.sign_in_user(id_claims(roles=["SurveyAdmin"]), signing_up=True)
        db.session.commit()
        tenant = Tenant.query.one()
        user = User.query.one()
        assert tenant.issuer_value == ISSUER_A
        assert result == {"survey_userid": user.id, "survey_tenantid": tenant.id}

    def test_second_user_of_registered_tenant_is_provisioned(self, owner):
        result = tenant_service.sign_in_user(id_claims(oid="oid-2", email="bob@contoso.com", name="Bob"))
        assert result["survey_tenantid"] == owner.tenant_id
        assert User.query.count() == 2

    def test_returning_user_is_refreshed(self, owner):
        tenant_service.sign_in_user(id_claims(oid=owner.object_id, email="renamed@contoso.com", name="Renamed"))
        db.session.commit()
        assert db.session.get(User, owner.id).email == "renamed@contoso.com"
        assert User.query.count() == 1

    def test_same_object_id_in_other_tenant_is_a_different_user(self, owner):
        make_user(ISSUER_B, "x@fabrikam.com", "X")
        result = tenant_service.sign_in_user(id_claims(issuer=ISSUER_B, oid=owner.object_id))
        assert result["survey_userid"] != owner.id

    def test_missing_object_id(self):
        with pytest.raises(SignInError):
            tenant_service.sign_in_user({"iss": ISSUER_A})

    def test_long_claim_uris_and_preferred_username(self, owner):
        claims = {
            "iss": ISSUER_A,
            "http://schemas.microsoft.com/identity/claims/objectidentifier": "oid-long",
            "preferred_username": "long@contoso.com",
        }
        tenant_service.sign_in_user(claims)
        user = tenant_service.find_user_by_object_id("oid-long")
        assert user.email == "long@contoso.com"
        assert user.display_name == "long@contoso.com"


class TestResolvePrincipal:
    def test_known_user(self, owner):
        p = tenant_service.resolve_principal(id_claims(oid=owner.object_id, roles=["SurveyCreator"]))
        assert isinstance(p, SurveyPrincipal)
        assert (p.user_id, p.tenant_id) == (owner.id, owner.tenant_id)
        assert p.is_survey_creator and not p.is_survey_admin

    def test_unknown_user_is_not_provisioned(self, owner):
        assert tenant_service.resolve_principal(id_claims(oid="never-seen")) is None
        assert User.query.count() == 1

    def test_principal_from_session_claims_needs_app_ids(self):
        assert SurveyPrincipal.from_claims(id_claims()) is None
        p = SurveyPrincipal.from_claims({**id_claims(), "survey_userid": "3", "survey_tenantid": 4})
        assert (p.user_id, p.tenant_id) == (3, 4)


class TestBearerMiddleware:
    def _token(self, app, user, secret=None, expired=False):
        now = datetime.now(timezone.utc)
        payload = {
            "iss": user.tenant.issuer_value,
            "oid": user.object_id,
            "iat": now,
            "exp": now - timedelta(minutes=5) if expired else now + timedelta(minutes=5),
        }
        return jwt.encode(payload, secret or app.config["JWT_SECRET_KEY"], algorithm="HS256")

    def test_valid_token(self, client, owner):
        res = client.get(f"/api/v1/users/{owner.id}/surveys", headers=bearer(owner))
        assert res.status_code == 200

    def test_expired_token(self, app, client, owner):
        token = self._token(app, owner, expired=True)
        res = client.get(f"/api/v1/users/{owner.id}/surveys", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_token_signed_with_other_secret(self, app, client, owner):
        token = self._token(app, owner, secret="someone-else")
        res = client.get(f"/api/v1/users/{owner.id}/surveys", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_token_without_issuer(self, app, client, owner):
        now = datetime.now(timezone.utc)
        token = jwt.encode({"oid": owner.object_id, "exp": now + timedelta(minutes=5)},
                           app.config["JWT_SECRET_KEY"], algorithm="HS256")
        res = client.get(f"/api/v1/users/{owner.id}/surveys", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401
