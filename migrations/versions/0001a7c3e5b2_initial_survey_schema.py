"""initial_survey_schema

Create identity (tenants, users) and survey (surveys, questions,
contributor_requests, survey_contributors) tables.

Revision ID: 0001a7c3e5b2
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001a7c3e5b2"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "tenants" not in existing_tables:
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("issuer_value", sa.String(length=1000), nullable=False),
            sa.Column("concurrency_stamp", sa.String(length=64), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tenants_issuer_value", "tenants", ["issuer_value"], unique=True)

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("object_id", sa.String(length=38), nullable=False),
            sa.Column("display_name", sa.String(length=256), nullable=False),
            sa.Column("email", sa.String(length=256), nullable=False),
            sa.Column("concurrency_stamp", sa.String(length=64), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_object_id", "users", ["object_id"])
        op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    if "surveys" not in existing_tables:
        op.create_table(
            "surveys",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("owner_id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="RESTRICT"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_surveys_owner_id", "surveys", ["owner_id"])
        op.create_index("ix_surveys_tenant_id", "surveys", ["tenant_id"])

    if "questions" not in existing_tables:
        op.create_table(
            "questions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("survey_id", sa.Integer(), nullable=False),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("type", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("possible_answers", sa.Text(), nullable=True, comment="newline separated"),
            sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_questions_survey_id", "questions", ["survey_id"])

    if "contributor_requests" not in existing_tables:
        op.create_table(
            "contributor_requests",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("survey_id", sa.Integer(), nullable=False),
            sa.Column("email_address", sa.String(length=256), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("survey_id", "email_address", name="uq_contributor_request_survey_email"),
        )

    if "survey_contributors" not in existing_tables:
        op.create_table(
            "survey_contributors",
            sa.Column("survey_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("survey_id", "user_id"),
        )
        op.create_index("ix_survey_contributors_user_id", "survey_contributors", ["user_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "survey_contributors" in existing_tables:
        op.drop_index("ix_survey_contributors_user_id", table_name="survey_contributors")
        op.drop_table("survey_contributors")
    if "contributor_requests" in existing_tables:
        op.drop_table("contributor_requests")
    if "questions" in existing_tables:
        op.drop_index("ix_questions_survey_id", table_name="questions")
        op.drop_table("questions")
    if "surveys" in existing_tables:
        op.drop_index("ix_surveys_tenant_id", table_name="surveys")
        op.drop_index("ix_surveys_owner_id", table_name="surveys")
        op.drop_table("surveys")
    if "users" in existing_tables:
        op.drop_index("ix_users_tenant_id", table_name="users")
        op.drop_index("ix_users_object_id", table_name="users")
        op.drop_table("users")
    if "tenants" in existing_tables:
        op.drop_index("ix_tenants_issuer_value", table_name="tenants")
        op.drop_table("tenants")
