"""Writing replies and messages through the content screens.

A reply judged harmful is never stored; the violation is recorded for its
author in the same request and the moderation reason goes back to the
caller. Input checks run before moderation so content rejected for other
reasons never counts as a violation.
"""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import Clock, system_clock
from ..config import Settings
from ..errors import Forbidden, HarmfulContent, ValidationError
from ..models import Message, Reply, Role
from .moderation import CrisisDetector, ModerationGate, screen_for_crisis
from .penalties import PenaltyEngine

logger = logging.getLogger(__name__)


def _clean(content: str, max_length: int, label: str) -> str:
    if not content or not content.strip():
        raise ValidationError(f"{label} content is required")
    if len(content) > max_length:
        raise ValidationError(f"{label} content exceeds maximum length")
    return content.strip()


class ContentAuthoring:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        moderation: ModerationGate,
        crisis: CrisisDetector,
        penalties: PenaltyEngine,
        clock: Clock = system_clock,
    ) -> None:
        self.session = session
        self.settings = settings
        self.moderation = moderation
        self.crisis = crisis
        self.penalties = penalties
        self.clock = clock

    async def create_reply(self, note_id: str, author_id: int, author_role: str, content: str) -> Reply:
        if author_role != Role.HEALER.value:
            raise Forbidden("Only healers can reply to notes")
        text = _clean(content, self.settings.reply_max_length, "Reply")

        verdict = await self.moderation.moderate(text, "reply")
        if verdict.harmful:
            reason = verdict.reason or "Content flagged by moderation"
            await self.penalties.record_violation(
                author_id, {"reason": reason, "content_type": "reply", "note_id": note_id}
            )
            logger.info("Rejected harmful reply from user %s on note %s", author_id, note_id)
            raise HarmfulContent(reason)

        reply = Reply(
            note_id=note_id,
            user_id=author_id,
            content=text,
            created_at=self.clock.now(),
        )
        self.session.add(reply)
        await self.session.commit()
        await self.session.refresh(reply)
        return reply

    async def create_message(self, chat_id: str, author_id: int, content: str) -> Message:
        text = _clean(content, self.settings.message_max_length, "Message")

        screen = await screen_for_crisis(self.crisis, text)
        message = Message(
            chat_id=chat_id,
            user_id=author_id,
            content=text,
            flagged_for_crisis=screen.is_crisis,
            crisis_confidence=screen.confidence,
            created_at=self.clock.now(),
        )
        self.session.add(message)
        await self.session.commit()
        await self.session.refresh(message)
        return message
