"""
Claim types, application roles and the authenticated principal.

Identity-provider tokens carry short JWT claim names (``tid``, ``oid``);
older WS-Fed style tokens carry the long schema URIs. ``claim_value`` reads
either form so the rest of the code only deals with ``ClaimTypes``.
"""

from dataclasses import dataclass, field


class ClaimTypes:
    TENANT_ID = "tid"
    OBJECT_ID = "oid"
    ISSUER = "iss"
    EMAIL = "email"
    NAME = "name"
    ROLES = "roles"

    # Assigned by the application at sign-in
    SURVEY_USER_ID = "survey_userid"
    SURVEY_TENANT_ID = "survey_tenantid"


_ALIASES = {
    ClaimTypes.TENANT_ID: ("http://schemas.microsoft.com/identity/claims/tenantid",),
    ClaimTypes.OBJECT_ID: ("http://schemas.microsoft.com/identity/claims/objectidentifier",),
    ClaimTypes.EMAIL: ("preferred_username", "upn"),
}


class Roles:
    SURVEY_ADMIN = "SurveyAdmin"
    SURVEY_CREATOR = "SurveyCreator"


def claim_value(claims: dict, claim_type: str, default=None):
    """Return the first non-empty value for ``claim_type`` or one of its aliases."""
    for key in (claim_type, *_ALIASES.get(claim_type, ())):
        val = claims.get(key)
        if val not in (None, ""):
            return val
    return default


def claim_roles(claims: dict) -> list[str]:
    roles = claims.get(ClaimTypes.ROLES) or []
    if isinstance(roles, str):
        roles = [roles]
    return list(roles)


@dataclass(frozen=True)
class SurveyPrincipal:
    """The signed-in user as seen by policies and the authorization handler.

    ``user_id`` and ``tenant_id`` are the application's own primary keys,
    not the identity provider's identifiers.
    """

    user_id: int
    tenant_id: int
    object_id: str = ""
    issuer: str = ""
    email: str = ""
    display_name: str = ""
    roles: tuple = field(default_factory=tuple)

    def is_in_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_survey_admin(self) -> bool:
        return self.is_in_role(Roles.SURVEY_ADMIN)

    @property
    def is_survey_creator(self) -> bool:
        return self.is_in_role(Roles.SURVEY_CREATOR) or self.is_survey_admin

    @classmethod
    def from_claims(cls, claims: dict) -> "SurveyPrincipal | None":
        """Build a principal from a claims dict that has been through sign-in.

        Returns None when the application ids have not been assigned yet.
        """
        user_id = claims.get(ClaimTypes.SURVEY_USER_ID)
        tenant_id = claims.get(ClaimTypes.SURVEY_TENANT_ID)
        if user_id is None or tenant_id is None:
            return None
        return cls(
            user_id=int(user_id),
            tenant_id=int(tenant_id),
            object_id=claim_value(claims, ClaimTypes.OBJECT_ID, ""),
            issuer=claim_value(claims, ClaimTypes.ISSUER, ""),
            email=claim_value(claims, ClaimTypes.EMAIL, ""),
            display_name=claim_value(claims, ClaimTypes.NAME, ""),
            roles=tuple(claim_roles(claims)),
        )
