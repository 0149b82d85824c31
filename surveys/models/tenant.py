"""
Identity Models — tenants and users provisioned from the identity provider.

A Tenant is keyed by the issuer value of its IdP tokens; a User is keyed by
the IdP object id. Both rows are created during sign-in (see
``surveys.services.tenant_service``) and never edited by hand.
"""

import uuid
from datetime import datetime, timezone

from surveys.models import db


def _stamp():
    return str(uuid.uuid4())


# ═══════════════════════════════════════════════════════════════
# 1. TENANTS
# ═══════════════════════════════════════════════════════════════
class Tenant(db.Model):
    __tablename__ = "tenants"

    id = db.Column(db.Integer, primary_key=True)
    issuer_value = db.Column(db.String(1000), nullable=False)
    concurrency_stamp = db.Column(db.String(64), nullable=False, default=_stamp)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index("ix_tenants_issuer_value", "issuer_value", unique=True),
    )

    users = db.relationship("User", back_populates="tenant", lazy="dynamic", cascade="all, delete-orphan")


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer, db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    object_id = db.Column(db.String(38), nullable=False)
    display_name = db.Column(db.String(256), nullable=False)
    email = db.Column(db.String(256), nullable=False)
    concurrency_stamp = db.Column(db.String(64), nullable=False, default=_stamp)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index("ix_users_object_id", "object_id"),
        db.Index("ix_users_tenant_id", "tenant_id"),
    )

    tenant = db.relationship("Tenant", back_populates="users")
    owned_surveys = db.relationship("Survey", back_populates="owner", lazy="dynamic")

    def to_dict(self):
        """UserDTO shape."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "email": self.email,
        }
