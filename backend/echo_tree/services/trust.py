"""Role transitions on the trust ladder.

Every write to ``users.role`` goes through :class:`TrustStateMachine`. Other
services raise a :class:`TrustEvent` and let the machine decide whether the
user's current role allows the move.

Transitions are conditional updates (``WHERE role = :from``), so applying an
event whose target already holds, or racing another request that applied it
first, is a no-op rather than a double transition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import Clock, system_clock
from ..errors import NotFound
from ..models import Role, RoleChange, User

logger = logging.getLogger(__name__)


class TrustEvent(str, Enum):
    QUIZ_PASSED = "quiz_passed"
    PENALTY_THRESHOLD_EXCEEDED = "penalty_threshold_exceeded"
    HEALER_REINSTATED = "healer_reinstated"
    ADMIN_GRANTED = "admin_granted"


# event -> (roles the event applies from, target role)
TRANSITIONS: Dict[TrustEvent, Tuple[Tuple[Role, ...], Role]] = {
    TrustEvent.QUIZ_PASSED: ((Role.TELLER,), Role.HEALER),
    TrustEvent.PENALTY_THRESHOLD_EXCEEDED: ((Role.HEALER,), Role.TELLER),
    TrustEvent.HEALER_REINSTATED: ((Role.TELLER,), Role.HEALER),
    TrustEvent.ADMIN_GRANTED: ((Role.VISITOR, Role.TELLER, Role.HEALER), Role.ADMIN),
}


@dataclass(frozen=True)
class Transition:
    """Outcome of applying one event."""

    user_id: int
    event: TrustEvent
    from_role: str
    to_role: str
    changed: bool


class TrustStateMachine:
    """Single authority for role changes.

    ``apply`` runs inside the caller's transaction and never commits, so a
    transition lands together with the state that caused it.
    """

    def __init__(self, session: AsyncSession, clock: Clock = system_clock) -> None:
        self.session = session
        self.clock = clock

    async def current_role(self, user_id: int) -> str:
        result = await self.session.execute(select(User.role).where(User.id == user_id))
        role = result.scalar_one_or_none()
        if role is None:
            raise NotFound("User not found")
        return role

    async def apply(self, user_id: int, event: TrustEvent) -> Transition:
        sources, target = TRANSITIONS[event]
        current = await self.current_role(user_id)

        changed = False
        from_role = current
        if current in {role.value for role in sources}:
            result = await self.session.execute(
                update(User)
                .where(User.id == user_id, User.role == current)
                .values(role=target.value)
                .execution_options(synchronize_session=False)
            )
            changed = result.rowcount == 1

        if changed:
            self.session.add(
                RoleChange(
                    user_id=user_id,
                    event=event.value,
                    from_role=from_role,
                    to_role=target.value,
                    changed_at=self.clock.now(),
                )
            )
            await self.session.flush()
            await self._refresh_loaded_user(user_id)
            logger.info(
                "Role transition for user %s: %s -> %s (%s)",
                user_id, from_role, target.value, event.value,
            )
        else:
            logger.debug("Event %s ignored for user %s in role %s", event.value, user_id, current)

        return Transition(
            user_id=user_id,
            event=event,
            from_role=from_role,
            to_role=target.value if changed else current,
            changed=changed,
        )

    async def _refresh_loaded_user(self, user_id: int) -> Optional[User]:
        """Bring any already-loaded ``User`` in line with the row."""

        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
