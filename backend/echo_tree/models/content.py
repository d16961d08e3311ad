"""Minimal authored-content rows written through the moderation contract.

The full chat and note stores live outside the trust engine; these tables
only keep what the engine itself persists.
"""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, OwnedByUserMixin


class Reply(OwnedByUserMixin, Base):
    """Healer reply to a shared note."""

    __tablename__ = "replies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    note_id: Mapped[str] = mapped_column(String, index=True)
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime)


class Message(OwnedByUserMixin, Base):
    """Participant message, annotated by the crisis screen."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chat_id: Mapped[str] = mapped_column(String, index=True)
    content: Mapped[str] = mapped_column(Text)
    flagged_for_crisis: Mapped[bool] = mapped_column(Boolean, default=False)
    crisis_confidence: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime)
