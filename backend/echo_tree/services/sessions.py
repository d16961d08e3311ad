"""Issuing, validating and revoking login sessions.

A login produces two things: a signed JWT naming the user and the session
record, and the record itself. The record is what makes a session
revocable; request authentication re-checks it on every call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import Clock, system_clock
from ..config import Settings
from ..errors import Forbidden, SessionExpired, SessionNotFound
from ..models import User, UserSession
from ..schemas import SessionView
from ..security import encode_access_token, token_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    token: str
    session: UserSession


@dataclass(frozen=True)
class SessionListing:
    sessions: Sequence[UserSession]
    total: int
    limit: int
    offset: int


class SessionManager:
    def __init__(self, session: AsyncSession, settings: Settings, clock: Clock = system_clock) -> None:
        self.session = session
        self.settings = settings
        self.clock = clock

    async def issue(
        self,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> IssuedSession:
        """Create the session record and the token bound to it."""

        created_at = self.clock.now()
        expires_at = created_at + timedelta(days=self.settings.session_expires_days)
        session_id = str(uuid4())
        token = encode_access_token(
            token_payload(user.id, session_id), expires_at, self.settings
        )

        record = UserSession(
            id=session_id,
            user_id=user.id,
            token=token,
            created_at=created_at,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(record)
        await self.session.commit()
        logger.info("Issued session %s for user %s", session_id, user.id)
        return IssuedSession(token=token, session=record)

    async def get_live(self, session_id: str) -> UserSession:
        """Return an unexpired record, evicting it if its time has passed."""

        record = await self.session.get(UserSession, session_id)
        if record is None:
            raise SessionNotFound()
        if record.expires_at <= self.clock.now():
            await self.session.delete(record)
            await self.session.commit()
            logger.info("Evicted expired session %s", session_id)
            raise SessionExpired()
        return record

    async def validate(self, session_id: str, requesting_user_id: int) -> SessionView:
        record = await self.get_live(session_id)
        if record.user_id != requesting_user_id:
            raise Forbidden("Unauthorized to access this session")

        owner = await self.session.get(User, record.user_id)
        return SessionView(
            session_id=record.id,
            user_id=record.user_id,
            username=owner.username,
            role=owner.role,
            created_at=record.created_at,
            expires_at=record.expires_at,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
        )

    async def logout(self, session_id: str, requesting_user_id: int) -> None:
        record = await self.session.get(UserSession, session_id)
        if record is None:
            raise SessionNotFound()
        if record.user_id != requesting_user_id:
            raise Forbidden("Unauthorized to delete this session")

        await self.session.delete(record)
        await self.session.commit()
        logger.info("Session %s revoked by user %s", session_id, requesting_user_id)

    async def revoke(self, session_id: str, owner_id: int) -> None:
        """Delete ``owner_id``'s session on behalf of the owner or an admin.

        The caller has already decided it may act for ``owner_id``; a record
        that belongs to someone else is reported as missing.
        """

        record = await self.session.get(UserSession, session_id)
        if record is None or record.user_id != owner_id:
            raise SessionNotFound()

        await self.session.delete(record)
        await self.session.commit()
        logger.info("Session %s of user %s revoked", session_id, owner_id)

    async def list_sessions(self, user_id: int, limit: int = 20, offset: int = 0) -> SessionListing:
        """Return the user's live sessions, newest first."""

        await self.purge_expired(user_id)

        total = await self.session.scalar(
            select(func.count()).select_from(UserSession).where(UserSession.user_id == user_id)
        )
        result = await self.session.execute(
            select(UserSession)
            .where(UserSession.user_id == user_id)
            .order_by(UserSession.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return SessionListing(
            sessions=list(result.scalars().all()),
            total=total or 0,
            limit=limit,
            offset=offset,
        )

    async def purge_expired(self, user_id: int) -> int:
        result = await self.session.execute(
            delete(UserSession)
            .where(UserSession.user_id == user_id, UserSession.expires_at <= self.clock.now())
        )
        await self.session.commit()
        return result.rowcount or 0

    async def revoke_all(self, user_id: int) -> int:
        """Delete every session of a user; the caller commits."""

        result = await self.session.execute(
            delete(UserSession)
            .where(UserSession.user_id == user_id)
        )
        return result.rowcount or 0
