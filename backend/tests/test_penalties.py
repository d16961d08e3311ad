"""Violation counting and the two latches."""
from typing import Any, Dict

import pytest

from echo_tree.errors import NotFound
from echo_tree.models import Penalty
from echo_tree.services.penalties import PenaltyEngine
from echo_tree.services.trust import TrustStateMachine


class RecordingNotifier:
    def __init__(self) -> None:
        self.alerts: list[tuple[int, int, Dict[str, Any]]] = []

    async def penalty_alert(self, penalty: Penalty, details: Dict[str, Any]) -> None:
        self.alerts.append((penalty.user_id, penalty.harmful_count, details))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def penalties(db_session, settings, clock, notifier) -> PenaltyEngine:
    return PenaltyEngine(
        db_session, settings, TrustStateMachine(db_session, clock), notifier=notifier, clock=clock
    )


@pytest.mark.asyncio
async def test_first_violation_creates_row(penalties, make_user, clock) -> None:
    user = await make_user("ada", role="healer")

    penalty = await penalties.record_violation(user.id, {"reason": "test"})

    assert penalty.harmful_count == 1
    assert not penalty.alert_sent
    assert not penalty.healer_status_removed
    assert penalty.last_violation_at == clock.now()


@pytest.mark.asyncio
async def test_alert_fires_once_at_five(penalties, make_user, notifier) -> None:
    user = await make_user("ada", role="healer")

    for _ in range(4):
        await penalties.record_violation(user.id, {"reason": "r"})
    assert notifier.alerts == []

    penalty = await penalties.record_violation(user.id, {"reason": "fifth"})
    assert penalty.alert_sent
    assert notifier.alerts == [(user.id, 5, {"reason": "fifth"})]

    for _ in range(3):
        await penalties.record_violation(user.id, {"reason": "r"})
    assert len(notifier.alerts) == 1
    assert user.role == "healer"


@pytest.mark.asyncio
async def test_removal_at_ten_demotes_once(penalties, make_user) -> None:
    user = await make_user("ada", role="healer")

    for _ in range(9):
        penalty = await penalties.record_violation(user.id)
    assert not penalty.healer_status_removed
    assert user.role == "healer"

    penalty = await penalties.record_violation(user.id)
    assert penalty.harmful_count == 10
    assert penalty.healer_status_removed
    assert user.role == "teller"

    penalty = await penalties.record_violation(user.id)
    assert penalty.harmful_count == 11
    assert user.role == "teller"


@pytest.mark.asyncio
async def test_removal_latch_leaves_tellers_as_tellers(penalties, make_user) -> None:
    user = await make_user("ada")

    for _ in range(10):
        penalty = await penalties.record_violation(user.id)

    assert penalty.healer_status_removed
    assert user.role == "teller"


@pytest.mark.asyncio
async def test_reset_clears_counts_but_not_role(penalties, make_user, notifier) -> None:
    user = await make_user("ada", role="healer")
    for _ in range(10):
        await penalties.record_violation(user.id)

    penalty = await penalties.reset(user.id)

    assert penalty.harmful_count == 0
    assert not penalty.alert_sent
    assert not penalty.healer_status_removed
    assert penalty.last_violation_at is None
    assert user.role == "teller"

    # The latches are armed again.
    for _ in range(5):
        await penalties.record_violation(user.id)
    assert len(notifier.alerts) == 2


@pytest.mark.asyncio
async def test_reset_without_row_is_not_found(penalties, make_user) -> None:
    user = await make_user("ada")

    with pytest.raises(NotFound):
        await penalties.reset(user.id)
    assert await penalties.get_penalty(user.id) is None


@pytest.mark.asyncio
async def test_list_penalties_filters_on_latches(penalties, make_user) -> None:
    loud = await make_user("loud", role="healer")
    quiet = await make_user("quiet", role="healer")
    for _ in range(5):
        await penalties.record_violation(loud.id)
    await penalties.record_violation(quiet.id)

    everyone = await penalties.list_penalties()
    alerted = await penalties.list_penalties(alert_sent=True)
    removed = await penalties.list_penalties(healer_status_removed=True)

    assert everyone.total == 2
    assert [p.user_id for p in alerted.penalties] == [loud.id]
    assert removed.total == 0
