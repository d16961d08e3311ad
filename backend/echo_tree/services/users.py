"""Account lifecycle: registration, status changes and soft deletion."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Conflict, NotFound
from ..models import AccountStatus, Role, User
from ..security import hash_password
from .sessions import SessionManager

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession, sessions: SessionManager) -> None:
        self.session = session
        self.sessions = sessions

    async def get(self, user_id: int) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def register(self, username: str, password: str, email: Optional[str] = None) -> User:
        """Create an active teller account."""

        if await self.get_by_username(username) is not None:
            raise Conflict("Username already exists")

        user = User(
            username=username,
            password_hash=hash_password(password),
            email=email,
            role=Role.TELLER.value,
            status=AccountStatus.ACTIVE.value,
            failed_login_attempts=0,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise Conflict("Username already exists") from exc
        await self.session.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    async def set_status(self, user_id: int, status: str) -> User:
        """Change account status; ``deleted`` is terminal."""

        user = await self.get(user_id)
        if user.status == AccountStatus.DELETED.value and status != AccountStatus.DELETED.value:
            raise Conflict("Deleted accounts cannot be restored")

        user.status = AccountStatus(status).value
        if user.status != AccountStatus.ACTIVE.value:
            await self.sessions.revoke_all(user.id)
        await self.session.commit()
        logger.info("User %s status set to %s", user.id, user.status)
        return user

    async def delete_account(self, user_id: int) -> None:
        await self.set_status(user_id, AccountStatus.DELETED.value)

    async def update_profile(self, user_id: int, changes: Dict[str, Any]) -> User:
        """Apply a partial profile update.

        ``changes`` holds only the fields the caller sent; a new password is
        re-hashed and an explicit ``email: None`` clears the address.
        """

        user = await self.get(user_id)
        if user.status == AccountStatus.DELETED.value:
            raise Conflict("Deleted accounts cannot be changed")

        if changes.get("password"):
            user.password_hash = hash_password(changes["password"])
        if "email" in changes:
            user.email = changes["email"]
        await self.session.commit()
        logger.info("Profile updated for user %s (%s)", user.id, ", ".join(sorted(changes)) or "no fields")
        return user
