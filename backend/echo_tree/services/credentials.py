"""Username/password verification with failed-attempt lockout."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import Clock, system_clock
from ..config import Settings
from ..errors import AccountLocked, Forbidden, InvalidCredentials
from ..models import AccountStatus, User
from ..security import verify_password

logger = logging.getLogger(__name__)


def minutes_until(moment: datetime, now: datetime) -> int:
    """Whole minutes left before ``moment``, rounded up."""
    return max(1, math.ceil((moment - now).total_seconds() / 60))


class CredentialStore:
    """Verifies credentials and keeps each user's lockout counters.

    Counter writes are single conditional UPDATE statements so concurrent
    failures for one user never lose an increment.
    """

    def __init__(self, session: AsyncSession, settings: Settings, clock: Clock = system_clock) -> None:
        self.session = session
        self.settings = settings
        self.clock = clock

    async def verify(self, username: str, password: str) -> User:
        result = await self.session.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None or user.status == AccountStatus.DELETED.value:
            raise InvalidCredentials()

        now = self.clock.now()
        if user.account_locked_until is not None and user.account_locked_until > now:
            raise AccountLocked(minutes_until(user.account_locked_until, now))

        if not verify_password(password, user.password_hash):
            await self._record_failure(user, now)
            raise InvalidCredentials()

        # A refused account keeps its counters and last_login untouched.
        if user.status != AccountStatus.ACTIVE.value:
            raise Forbidden(f"Account is {user.status}")
        await self._record_success(user, now)
        return user

    async def unlock(self, user: User) -> User:
        """Clear the failed-attempt counter and any lock (operator action)."""

        await self.session.execute(
            update(User)
            .where(User.id == user.id)
            .values(failed_login_attempts=0, account_locked_until=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return await self._reload(user.id)

    async def _record_failure(self, user: User, now: datetime) -> None:
        lock_until = now + timedelta(minutes=self.settings.lockout_minutes)
        attempts = User.failed_login_attempts + 1
        await self.session.execute(
            update(User)
            .where(User.id == user.id)
            .values(
                failed_login_attempts=attempts,
                account_locked_until=case(
                    (attempts >= self.settings.max_failed_logins, lock_until),
                    else_=User.account_locked_until,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        user = await self._reload(user.id)
        if user.account_locked_until is not None and user.account_locked_until > now:
            logger.warning(
                "Account %s locked until %s after %s failed logins",
                user.username, user.account_locked_until, user.failed_login_attempts,
            )
        else:
            logger.warning(
                "Failed login for %s (%s consecutive)", user.username, user.failed_login_attempts
            )

    async def _record_success(self, user: User, now: datetime) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user.id)
            .values(failed_login_attempts=0, account_locked_until=None, last_login=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        await self._reload(user.id)

    async def _reload(self, user_id: int) -> User:
        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()
