"""Violation counting with the alert and healer-removal latches."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import Clock, system_clock
from ..config import Settings
from ..errors import NotFound
from ..models import Penalty
from .trust import TrustEvent, TrustStateMachine

logger = logging.getLogger(__name__)


class AlertNotifier(Protocol):
    async def penalty_alert(self, penalty: Penalty, details: Dict[str, Any]) -> None:
        ...


class LoggingAlertNotifier:
    """Default notifier: a warning in the service log for moderators."""

    async def penalty_alert(self, penalty: Penalty, details: Dict[str, Any]) -> None:
        logger.warning(
            "Penalty alert: user %s reached %s harmful submissions (latest reason: %s)",
            penalty.user_id, penalty.harmful_count, details.get("reason"),
        )


@dataclass(frozen=True)
class PenaltyListing:
    penalties: Sequence[Penalty]
    total: int
    limit: int
    offset: int


class PenaltyEngine:
    """Counts a user's violations and fires each latch at most once.

    The increment and both latch checks are single-statement conditional
    updates; a latch side effect runs only for the request whose update
    actually flipped the flag.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        trust: TrustStateMachine,
        notifier: Optional[AlertNotifier] = None,
        clock: Clock = system_clock,
    ) -> None:
        self.session = session
        self.settings = settings
        self.trust = trust
        self.notifier = notifier or LoggingAlertNotifier()
        self.clock = clock

    async def record_violation(self, user_id: int, details: Optional[Dict[str, Any]] = None) -> Penalty:
        details = details or {}
        now = self.clock.now()

        await self._ensure_row(user_id, now)
        await self.session.execute(
            update(Penalty)
            .where(Penalty.user_id == user_id)
            .values(
                harmful_count=Penalty.harmful_count + 1,
                last_violation_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        alert_fired = await self._latch(
            Penalty.alert_sent, self.settings.penalty_alert_threshold, user_id, now
        )
        removal_fired = await self._latch(
            Penalty.healer_status_removed, self.settings.penalty_removal_threshold, user_id, now
        )
        if removal_fired:
            await self.trust.apply(user_id, TrustEvent.PENALTY_THRESHOLD_EXCEEDED)

        await self.session.commit()
        penalty = await self._load(user_id)

        logger.info(
            "Recorded violation for user %s (count %s)", user_id, penalty.harmful_count
        )
        if alert_fired:
            await self.notifier.penalty_alert(penalty, details)
        if removal_fired:
            logger.warning(
                "Healer status removed for user %s after %s violations",
                user_id, penalty.harmful_count,
            )
        return penalty

    async def get_penalty(self, user_id: int) -> Optional[Penalty]:
        return await self._load(user_id)

    async def reset(self, user_id: int) -> Penalty:
        """Zero the counter and both latches. The user's role is left as is."""

        result = await self.session.execute(
            update(Penalty)
            .where(Penalty.user_id == user_id)
            .values(
                harmful_count=0,
                alert_sent=False,
                healer_status_removed=False,
                last_violation_at=None,
                updated_at=self.clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFound("Penalty not found")
        await self.session.commit()
        logger.info("Penalty reset for user %s", user_id)
        return await self._load(user_id)

    async def list_penalties(
        self,
        alert_sent: Optional[bool] = None,
        healer_status_removed: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> PenaltyListing:
        filters = []
        if alert_sent is not None:
            filters.append(Penalty.alert_sent == alert_sent)
        if healer_status_removed is not None:
            filters.append(Penalty.healer_status_removed == healer_status_removed)

        total = await self.session.scalar(
            select(func.count()).select_from(Penalty).where(*filters)
        )
        result = await self.session.execute(
            select(Penalty)
            .where(*filters)
            .order_by(Penalty.updated_at.desc(), Penalty.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return PenaltyListing(
            penalties=list(result.scalars().all()), total=total or 0, limit=limit, offset=offset
        )

    async def _ensure_row(self, user_id: int, now) -> None:
        values = dict(
            user_id=user_id,
            harmful_count=0,
            alert_sent=False,
            healer_status_removed=False,
            updated_at=now,
        )
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        elif dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        else:
            dialect_insert = None

        if dialect_insert is not None:
            await self.session.execute(
                dialect_insert(Penalty).values(**values).on_conflict_do_nothing(
                    index_elements=["user_id"]
                )
            )
            return

        exists = await self.session.scalar(select(Penalty.id).where(Penalty.user_id == user_id))
        if exists is None:
            await self.session.execute(insert(Penalty).values(**values))

    async def _latch(self, flag, threshold: int, user_id: int, now) -> bool:
        result = await self.session.execute(
            update(Penalty)
            .where(
                Penalty.user_id == user_id,
                flag == False,  # noqa: E712
                Penalty.harmful_count >= threshold,
            )
            .values({flag: True, Penalty.updated_at: now})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _load(self, user_id: int) -> Optional[Penalty]:
        result = await self.session.execute(
            select(Penalty)
            .where(Penalty.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
