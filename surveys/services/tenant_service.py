"""
Tenant Service — tenant/user provisioning at sign-in.

A tenant is registered once through the sign-up flow by one of its
administrators; afterwards every user of that tenant signs in normally and
gets a User row on first sign-in.

All functions ``flush()``; the caller commits.
"""

import logging

from surveys.models import db
from surveys.models.tenant import Tenant, User
from surveys.security.claims import ClaimTypes, Roles, SurveyPrincipal, claim_roles, claim_value

logger = logging.getLogger(__name__)


class SignInError(Exception):
    """Raised when a validated identity cannot be admitted to the application."""


class TenantNotRegisteredError(SignInError):
    def __init__(self, issuer: str):
        self.issuer = issuer
        super().__init__(f"Tenant {issuer!r} is not registered. Sign up first.")


class SignUpNotAllowedError(SignInError):
    def __init__(self, issuer: str):
        self.issuer = issuer
        super().__init__(f"Only a {Roles.SURVEY_ADMIN} can sign up tenant {issuer!r}")


# ═══════════════════════════════════════════════════════════════
# Tenant manager
# ═══════════════════════════════════════════════════════════════
def find_tenant_by_issuer(issuer: str) -> Tenant | None:
    return Tenant.query.filter_by(issuer_value=issuer).first()


def create_tenant(issuer: str) -> Tenant:
    tenant = Tenant(issuer_value=issuer)
    db.session.add(tenant)
    db.session.flush()
    logger.info("Tenant created", extra={"tenant_id": tenant.id, "issuer": issuer})
    return tenant


# ═══════════════════════════════════════════════════════════════
# User manager
# ═══════════════════════════════════════════════════════════════
def find_user_by_object_id(object_id: str, tenant_id: int | None = None) -> User | None:
    q = User.query.filter_by(object_id=object_id)
    if tenant_id is not None:
        q = q.filter_by(tenant_id=tenant_id)
    return q.first()


def create_user(tenant: Tenant, object_id: str, display_name: str, email: str) -> User:
    user = User(
        tenant_id=tenant.id,
        object_id=object_id,
        display_name=display_name,
        email=email,
    )
    db.session.add(user)
    db.session.flush()
    logger.info("User created", extra={"tenant_id": tenant.id, "user_id": user.id})
    return user


def _update_user(user: User, display_name: str, email: str) -> None:
    changed = False
    if display_name and user.display_name != display_name:
        user.display_name = display_name
        changed = True
    if email and user.email != email:
        user.email = email
        changed = True
    if changed:
        db.session.flush()


# ═══════════════════════════════════════════════════════════════
# Sign-in
# ═══════════════════════════════════════════════════════════════
def sign_in_user(claims: dict, signing_up: bool = False) -> dict:
    """
    Admit a validated identity and return the application claims to add.

    Args:
        claims: Claims of the validated id_token (iss, oid, email, name, roles).
        signing_up: True when the user came through the tenant sign-up flow.

    Returns:
        {"survey_userid": <User.id>, "survey_tenantid": <Tenant.id>}

    Raises:
        TenantNotRegisteredError: unknown issuer and not signing up.
        SignUpNotAllowedError: signing up without the SurveyAdmin role.
        SignInError: required claims are missing.
    """
    issuer = claim_value(claims, ClaimTypes.ISSUER)
    object_id = claim_value(claims, ClaimTypes.OBJECT_ID)
    if not issuer or not object_id:
        raise SignInError("Token is missing the issuer or object id claim")

    email = claim_value(claims, ClaimTypes.EMAIL, "")
    display_name = claim_value(claims, ClaimTypes.NAME, "") or email

    tenant = find_tenant_by_issuer(issuer)
    if tenant is None:
        if not signing_up:
            logger.warning("Sign-in rejected: tenant not registered", extra={"issuer": issuer})
            raise TenantNotRegisteredError(issuer)
        if Roles.SURVEY_ADMIN not in claim_roles(claims):
            logger.warning("Sign-up rejected: caller is not a tenant admin", extra={"issuer": issuer})
            raise SignUpNotAllowedError(issuer)
        tenant = create_tenant(issuer)

    user = find_user_by_object_id(object_id, tenant_id=tenant.id)
    if user is None:
        user = create_user(tenant, object_id, display_name, email)
    else:
        _update_user(user, display_name, email)

    return {
        ClaimTypes.SURVEY_USER_ID: user.id,
        ClaimTypes.SURVEY_TENANT_ID: tenant.id,
    }


def resolve_principal(claims: dict) -> SurveyPrincipal | None:
    """Map bearer-token claims onto an existing tenant and user, without provisioning."""
    issuer = claim_value(claims, ClaimTypes.ISSUER)
    object_id = claim_value(claims, ClaimTypes.OBJECT_ID)
    if not issuer or not object_id:
        return None
    tenant = find_tenant_by_issuer(issuer)
    if tenant is None:
        return None
    user = find_user_by_object_id(object_id, tenant_id=tenant.id)
    if user is None:
        return None
    return SurveyPrincipal(
        user_id=user.id,
        tenant_id=tenant.id,
        object_id=object_id,
        issuer=issuer,
        email=claim_value(claims, ClaimTypes.EMAIL, "") or user.email,
        display_name=claim_value(claims, ClaimTypes.NAME, "") or user.display_name,
        roles=tuple(claim_roles(claims)),
    )
