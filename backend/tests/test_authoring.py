"""Reply and message creation through the content screens."""
import pytest
from sqlalchemy import func, select

from echo_tree.errors import Forbidden, HarmfulContent, ValidationError
from echo_tree.models import Message, Reply
from echo_tree.services.authoring import ContentAuthoring
from echo_tree.services.moderation import (
    CrisisResult,
    KeywordCrisisDetector,
    KeywordModerationGate,
)
from echo_tree.services.penalties import PenaltyEngine
from echo_tree.services.trust import TrustStateMachine


class ExplodingDetector:
    async def detect_crisis(self, text: str) -> CrisisResult:
        raise RuntimeError("boom")


def build_authoring(db_session, settings, clock, crisis=None) -> ContentAuthoring:
    trust = TrustStateMachine(db_session, clock)
    return ContentAuthoring(
        db_session,
        settings,
        KeywordModerationGate(settings.harmful_terms),
        crisis or KeywordCrisisDetector(settings.crisis_terms),
        PenaltyEngine(db_session, settings, trust, clock=clock),
        clock=clock,
    )


@pytest.fixture
def authoring(db_session, settings, clock) -> ContentAuthoring:
    return build_authoring(db_session, settings, clock)


async def _count(db_session, model) -> int:
    return await db_session.scalar(select(func.count()).select_from(model))


@pytest.mark.asyncio
async def test_clean_reply_is_stored(authoring, make_user, db_session) -> None:
    healer = await make_user("ada", role="healer")

    reply = await authoring.create_reply("note-1", healer.id, healer.role, "  You are not alone.  ")

    assert reply.id is not None
    assert reply.content == "You are not alone."
    assert await _count(db_session, Reply) == 1


@pytest.mark.asyncio
async def test_harmful_reply_records_one_violation_and_is_not_stored(
    authoring, make_user, db_session, settings, clock
) -> None:
    healer = await make_user("ada", role="healer")

    with pytest.raises(HarmfulContent) as excinfo:
        await authoring.create_reply("note-1", healer.id, healer.role, "I hate you")

    assert excinfo.value.status_code == 422
    assert excinfo.value.reason == "Contains potentially harmful content"
    assert await _count(db_session, Reply) == 0
    penalty = await build_authoring(db_session, settings, clock).penalties.get_penalty(healer.id)
    assert penalty.harmful_count == 1


@pytest.mark.asyncio
async def test_only_healers_reply(authoring, make_user) -> None:
    teller = await make_user("ada")

    with pytest.raises(Forbidden):
        await authoring.create_reply("note-1", teller.id, teller.role, "Hello")


@pytest.mark.asyncio
async def test_blank_reply_is_invalid_and_not_a_violation(authoring, make_user) -> None:
    healer = await make_user("ada", role="healer")

    with pytest.raises(ValidationError):
        await authoring.create_reply("note-1", healer.id, healer.role, "   ")
    assert await authoring.penalties.get_penalty(healer.id) is None


@pytest.mark.asyncio
async def test_crisis_message_is_stored_flagged(authoring, make_user) -> None:
    teller = await make_user("ada")

    message = await authoring.create_message("chat-1", teller.id, "I want to die")

    assert message.flagged_for_crisis
    assert message.crisis_confidence == 0.8


@pytest.mark.asyncio
async def test_message_survives_detector_failure(make_user, db_session, settings, clock) -> None:
    teller = await make_user("ada")
    authoring = build_authoring(db_session, settings, clock, crisis=ExplodingDetector())

    message = await authoring.create_message("chat-1", teller.id, "hello")

    assert not message.flagged_for_crisis
    assert message.crisis_confidence == 0.0
    assert await _count(db_session, Message) == 1
