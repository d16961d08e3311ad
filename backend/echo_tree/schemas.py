"""Pydantic schemas used across the backend API."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    """Payload for user registration."""

    username: str = Field(min_length=3, max_length=30)
    password: str = Field(min_length=6)
    email: EmailStr | None = None


class UserLogin(BaseModel):
    """Credentials supplied during login."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserRead(BaseModel):
    """Public representation of a user."""

    id: int
    username: str
    email: Optional[str] = None
    role: str
    status: str
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Partial profile update; omitted fields are left alone."""

    password: Optional[str] = Field(default=None, min_length=6)
    email: EmailStr | None = None


class StatusUpdate(BaseModel):
    status: str = Field(pattern="^(active|suspended|banned|deleted)$")


class SessionRead(BaseModel):
    """Session record as listed to its owner."""

    id: str
    user_id: int
    created_at: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    class Config:
        from_attributes = True


class SessionView(BaseModel):
    """Validated session joined with its owner."""

    session_id: str
    user_id: int
    username: str
    role: str
    created_at: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    valid: bool = True


class SessionPage(BaseModel):
    sessions: list[SessionRead]
    total: int
    limit: int
    offset: int


class LoginResponse(BaseModel):
    """JWT response payload plus the session it is bound to."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserRead
    session: SessionRead


class QuizAnswer(BaseModel):
    question_id: int
    answer: int


class QuizSubmission(BaseModel):
    answers: list[QuizAnswer]


class QuizQuestionRead(BaseModel):
    """Question as shown to the participant, without the answer key."""

    id: int
    question: str
    options: list[str]


class QuizResult(BaseModel):
    score: int
    passed: bool
    can_retake_at: Optional[datetime] = None


class QuizStatus(BaseModel):
    taken: bool
    passed: Optional[bool] = None
    score: Optional[int] = None
    can_retake: bool
    can_retake_at: Optional[datetime] = None
    questions: list[QuizQuestionRead]


class PenaltyRead(BaseModel):
    user_id: int
    harmful_count: int
    alert_sent: bool
    healer_status_removed: bool
    last_violation_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class PenaltyPage(BaseModel):
    penalties: list[PenaltyRead]
    total: int
    limit: int
    offset: int


class ViolationCreate(BaseModel):
    reason: str = Field(min_length=1)


class ModerationRequest(BaseModel):
    text: str
    content_type: str = "message"


class ModerationRead(BaseModel):
    harmful: bool
    reason: Optional[str] = None


class CrisisRequest(BaseModel):
    text: str


class CrisisRead(BaseModel):
    is_crisis: bool
    confidence: float


class ContentCreate(BaseModel):
    content: str


class ReplyRead(BaseModel):
    id: int
    note_id: str
    user_id: int
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageRead(BaseModel):
    id: int
    chat_id: str
    user_id: int
    content: str
    flagged_for_crisis: bool
    crisis_confidence: float
    created_at: datetime

    class Config:
        from_attributes = True
