"""Reusable FastAPI dependencies."""
from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import Clock, system_clock
from .config import Settings, get_settings
from .database import get_session
from .errors import Forbidden, SessionNotFound, Unauthenticated
from .models import AccountStatus, Role, User
from .security import decode_access_token
from .services.authoring import ContentAuthoring
from .services.credentials import CredentialStore
from .services.moderation import (
    CrisisDetector,
    KeywordCrisisDetector,
    KeywordModerationGate,
    ModerationGate,
)
from .services.penalties import PenaltyEngine
from .services.quiz import QuizEngine
from .services.sessions import SessionManager
from .services.trust import TrustStateMachine
from .services.users import UserService

# Use simple Bearer auth instead of OAuth2 password flow
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as read from the store on this request."""

    user_id: int
    role: str
    status: str
    session_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields an AsyncSession."""
    async for session in get_session():
        yield session


def get_clock() -> Clock:
    return system_clock


def get_moderation_gate(settings: Settings = Depends(get_settings)) -> ModerationGate:
    return KeywordModerationGate(settings.harmful_terms)


def get_crisis_detector(settings: Settings = Depends(get_settings)) -> CrisisDetector:
    return KeywordCrisisDetector(settings.crisis_terms)


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def get_trust_state_machine(session: SessionDep, clock: ClockDep) -> TrustStateMachine:
    return TrustStateMachine(session, clock)


def get_session_manager(session: SessionDep, settings: SettingsDep, clock: ClockDep) -> SessionManager:
    return SessionManager(session, settings, clock)


def get_credential_store(session: SessionDep, settings: SettingsDep, clock: ClockDep) -> CredentialStore:
    return CredentialStore(session, settings, clock)


def get_user_service(
    session: SessionDep, sessions: SessionManager = Depends(get_session_manager)
) -> UserService:
    return UserService(session, sessions)


def get_quiz_engine(
    session: SessionDep,
    settings: SettingsDep,
    clock: ClockDep,
    trust: TrustStateMachine = Depends(get_trust_state_machine),
) -> QuizEngine:
    return QuizEngine(session, settings, trust, clock=clock)


def get_penalty_engine(
    session: SessionDep,
    settings: SettingsDep,
    clock: ClockDep,
    trust: TrustStateMachine = Depends(get_trust_state_machine),
) -> PenaltyEngine:
    return PenaltyEngine(session, settings, trust, clock=clock)


def get_content_authoring(
    session: SessionDep,
    settings: SettingsDep,
    clock: ClockDep,
    moderation: ModerationGate = Depends(get_moderation_gate),
    crisis: CrisisDetector = Depends(get_crisis_detector),
    penalties: PenaltyEngine = Depends(get_penalty_engine),
) -> ContentAuthoring:
    return ContentAuthoring(session, settings, moderation, crisis, penalties, clock=clock)


async def authenticate(
    token: str, session: AsyncSession, settings: Settings, sessions: SessionManager
) -> Principal:
    """Resolve a bearer token to the caller.

    The signature must verify and the session record named in the token must
    still exist and be unexpired; the role comes from the user row.
    """

    try:
        token_data = decode_access_token(token, settings)
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Could not validate credentials") from exc

    try:
        record = await sessions.get_live(token_data.sid)
    except SessionNotFound as exc:
        raise Unauthenticated("Session is no longer valid") from exc

    user = await session.get(User, token_data.user_id)
    if record.user_id != token_data.user_id or record.token != token:
        raise Unauthenticated("Could not validate credentials")
    if user is None or user.status != AccountStatus.ACTIVE.value:
        raise Unauthenticated("Inactive or missing user")

    return Principal(user_id=user.id, role=user.role, status=user.status, session_id=record.id)


async def get_current_principal(
    session: SessionDep,
    settings: SettingsDep,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    sessions: SessionManager = Depends(get_session_manager),
) -> Principal:
    """
    Return the authenticated caller from a JWT access token
    taken from the Authorization: Bearer <token> header.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthenticated("Not authenticated")

    return await authenticate(credentials.credentials, session, settings, sessions)


def ensure_self_or_admin(principal: Principal, user_id: int) -> None:
    """Owners may act on their own records; admins on anyone's."""

    if user_id != principal.user_id and not principal.is_admin:
        raise Forbidden()


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Ensure the current user has the admin role."""

    if not principal.is_admin:
        raise Forbidden("Administrator role required")
    return principal


PrincipalDep = Annotated[Principal, Depends(get_current_principal)]
AdminDep = Annotated[Principal, Depends(require_admin)]
