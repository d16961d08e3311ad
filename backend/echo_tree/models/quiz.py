"""Stored result of a user's latest healer quiz attempt."""
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, OwnedByUserMixin


class QuizAttempt(OwnedByUserMixin, Base):
    """One row per user, overwritten on every retake."""

    __tablename__ = "quiz_attempts"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_quiz_attempts_user_id"),
        CheckConstraint("score >= 0 AND score <= 100", name="score_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    score: Mapped[int] = mapped_column(Integer)
    passed: Mapped[bool] = mapped_column(Boolean)
    answers: Mapped[list] = mapped_column(JSON, default=list)
    taken_at: Mapped[datetime] = mapped_column(DateTime)
    can_retake_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
