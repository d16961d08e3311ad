"""Per-user violation counter with alert and removal latches."""
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, OwnedByUserMixin, utc_now


class Penalty(OwnedByUserMixin, Base):
    """Created on a user's first violation; latches stay set until reset."""

    __tablename__ = "penalties"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_penalties_user_id"),
        CheckConstraint("harmful_count >= 0", name="harmful_count_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    harmful_count: Mapped[int] = mapped_column(Integer, default=0)
    alert_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    healer_status_removed: Mapped[bool] = mapped_column(Boolean, default=False)
    last_violation_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
