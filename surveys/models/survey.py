"""
Multi-Tenant Surveys
Survey domain models.

Models:
    - Survey: a titled questionnaire owned by a user, scoped to a tenant
    - Question: one question of a survey (simple text, multiple choice, five stars)
    - ContributorRequest: pending e-mail invitation to contribute to a survey
    - survey_contributors: Survey <-> User join table (granted contributors)

Architecture chain: Tenant → User → Survey → Question / ContributorRequest
"""

import enum
from datetime import datetime, timezone

from surveys.models import db


# ── Constants ────────────────────────────────────────────────────────────────

class QuestionType(enum.IntEnum):
    SIMPLE_TEXT = 0
    MULTIPLE_CHOICE = 1
    FIVE_STARS = 2


QUESTION_TYPES = {t.value for t in QuestionType}


survey_contributors = db.Table(
    "survey_contributors",
    db.Column("survey_id", db.Integer, db.ForeignKey("surveys.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Index("ix_survey_contributors_user_id", "user_id"),
)


# ═══════════════════════════════════════════════════════════════════════════
#  SURVEY
# ═══════════════════════════════════════════════════════════════════════════

class Survey(db.Model):
    __tablename__ = "surveys"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    owner_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    tenant_id = db.Column(db.Integer, nullable=False, index=True)
    published = db.Column(db.Boolean, nullable=False, default=False)

    owner = db.relationship("User", back_populates="owned_surveys")
    questions = db.relationship(
        "Question", back_populates="survey", cascade="all, delete-orphan",
        order_by="Question.id",
    )
    contributors = db.relationship("User", secondary=survey_contributors, lazy="selectin")
    requests = db.relationship(
        "ContributorRequest", back_populates="survey", cascade="all, delete-orphan",
    )

    def has_contributor(self, user_id):
        return any(u.id == user_id for u in self.contributors)

    def to_summary(self):
        return {
            "id": self.id,
            "title": self.title,
            "owner_id": self.owner_id,
            "tenant_id": self.tenant_id,
            "published": self.published,
        }

    def to_dict(self):
        """SurveyDTO shape."""
        d = self.to_summary()
        d["questions"] = [q.to_dict() for q in self.questions]
        d["contributors"] = [u.to_dict() for u in self.contributors]
        return d


# ═══════════════════════════════════════════════════════════════════════════
#  QUESTION
# ═══════════════════════════════════════════════════════════════════════════

class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    survey_id = db.Column(
        db.Integer, db.ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    text = db.Column(db.Text, nullable=False)
    type = db.Column(db.Integer, nullable=False, default=QuestionType.SIMPLE_TEXT.value)
    possible_answers = db.Column(db.Text, nullable=True, comment="newline separated")

    survey = db.relationship("Survey", back_populates="questions")

    def to_dict(self):
        """QuestionDTO shape."""
        return {
            "id": self.id,
            "survey_id": self.survey_id,
            "text": self.text,
            "type": self.type,
            "possible_answers": self.possible_answers,
        }


# ═══════════════════════════════════════════════════════════════════════════
#  CONTRIBUTOR REQUEST
# ═══════════════════════════════════════════════════════════════════════════

class ContributorRequest(db.Model):
    __tablename__ = "contributor_requests"

    id = db.Column(db.Integer, primary_key=True)
    survey_id = db.Column(
        db.Integer, db.ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False,
    )
    email_address = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("survey_id", "email_address", name="uq_contributor_request_survey_email"),
    )

    survey = db.relationship("Survey", back_populates="requests")

    def to_dict(self):
        return {
            "id": self.id,
            "survey_id": self.survey_id,
            "email_address": self.email_address,
            "created": self.created_at.isoformat() if self.created_at else None,
        }
