"""Role transitions."""
import pytest
from sqlalchemy import select

from echo_tree.errors import NotFound
from echo_tree.models import RoleChange, User
from echo_tree.services.trust import TrustEvent, TrustStateMachine


@pytest.fixture
def trust(db_session, clock) -> TrustStateMachine:
    return TrustStateMachine(db_session, clock)


async def _role_changes(db_session, user_id: int) -> list[RoleChange]:
    result = await db_session.execute(
        select(RoleChange).where(RoleChange.user_id == user_id).order_by(RoleChange.id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_quiz_passed_promotes_teller_once(trust, make_user, db_session) -> None:
    user = await make_user("ada")

    first = await trust.apply(user.id, TrustEvent.QUIZ_PASSED)
    second = await trust.apply(user.id, TrustEvent.QUIZ_PASSED)
    await db_session.commit()

    assert first.changed and first.from_role == "teller" and first.to_role == "healer"
    assert not second.changed
    assert second.to_role == "healer"
    assert user.role == "healer"
    changes = await _role_changes(db_session, user.id)
    assert [(c.event, c.from_role, c.to_role) for c in changes] == [
        ("quiz_passed", "teller", "healer")
    ]


@pytest.mark.asyncio
async def test_penalty_threshold_demotes_healer_once(trust, make_user, db_session) -> None:
    user = await make_user("ada", role="healer")

    first = await trust.apply(user.id, TrustEvent.PENALTY_THRESHOLD_EXCEEDED)
    second = await trust.apply(user.id, TrustEvent.PENALTY_THRESHOLD_EXCEEDED)

    assert first.changed
    assert not second.changed
    assert user.role == "teller"


@pytest.mark.asyncio
async def test_penalty_event_does_not_touch_tellers_or_admins(trust, make_user) -> None:
    teller = await make_user("ada")
    admin = await make_user("root", role="admin")

    assert not (await trust.apply(teller.id, TrustEvent.PENALTY_THRESHOLD_EXCEEDED)).changed
    assert not (await trust.apply(admin.id, TrustEvent.PENALTY_THRESHOLD_EXCEEDED)).changed
    assert teller.role == "teller"
    assert admin.role == "admin"


@pytest.mark.asyncio
async def test_quiz_passed_never_demotes_admin(trust, make_user) -> None:
    admin = await make_user("root", role="admin")

    outcome = await trust.apply(admin.id, TrustEvent.QUIZ_PASSED)

    assert not outcome.changed
    assert outcome.to_role == "admin"


@pytest.mark.asyncio
async def test_visitor_has_no_path_to_healer(trust, make_user, db_session) -> None:
    user = await make_user("ada")
    user.role = "visitor"
    await db_session.commit()

    assert not (await trust.apply(user.id, TrustEvent.QUIZ_PASSED)).changed
    assert not (await trust.apply(user.id, TrustEvent.HEALER_REINSTATED)).changed
    refreshed = await db_session.get(User, user.id)
    assert refreshed.role == "visitor"


@pytest.mark.asyncio
async def test_unknown_user_raises_not_found(trust) -> None:
    with pytest.raises(NotFound):
        await trust.apply(999, TrustEvent.QUIZ_PASSED)
