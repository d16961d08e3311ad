"""Session issue, validation, expiry and listing."""
import pytest

from echo_tree.errors import Forbidden, SessionExpired, SessionNotFound
from echo_tree.models import UserSession
from echo_tree.security import decode_access_token
from echo_tree.services.sessions import SessionManager


@pytest.fixture
def sessions(db_session, settings, clock) -> SessionManager:
    return SessionManager(db_session, settings, clock)


@pytest.mark.asyncio
async def test_issue_binds_token_to_record(sessions, make_user, settings, clock) -> None:
    user = await make_user("ada")

    issued = await sessions.issue(user, ip_address="10.0.0.1", user_agent="pytest")

    token = decode_access_token(issued.token, settings)
    assert token.user_id == user.id
    assert token.sid == issued.session.id
    assert issued.session.token == issued.token
    assert (issued.session.expires_at - issued.session.created_at).days == 7
    assert issued.session.created_at == clock.now()


@pytest.mark.asyncio
async def test_validate_returns_owner_view(sessions, make_user) -> None:
    user = await make_user("ada")
    issued = await sessions.issue(user, ip_address="10.0.0.1")

    view = await sessions.validate(issued.session.id, user.id)

    assert view.session_id == issued.session.id
    assert view.username == "ada"
    assert view.role == "teller"
    assert view.ip_address == "10.0.0.1"


@pytest.mark.asyncio
async def test_validate_rejects_other_users(sessions, make_user) -> None:
    owner = await make_user("ada")
    other = await make_user("grace")
    issued = await sessions.issue(owner)

    with pytest.raises(Forbidden):
        await sessions.validate(issued.session.id, other.id)
    with pytest.raises(Forbidden):
        await sessions.logout(issued.session.id, other.id)


@pytest.mark.asyncio
async def test_expired_session_is_evicted_on_validate(sessions, make_user, clock, db_session) -> None:
    user = await make_user("ada")
    issued = await sessions.issue(user)
    session_id = issued.session.id

    clock.advance(days=7, seconds=1)
    with pytest.raises(SessionExpired):
        await sessions.validate(session_id, user.id)

    assert await db_session.get(UserSession, session_id) is None
    with pytest.raises(SessionNotFound):
        await sessions.validate(session_id, user.id)


@pytest.mark.asyncio
async def test_logout_removes_the_record(sessions, make_user) -> None:
    user = await make_user("ada")
    issued = await sessions.issue(user)

    await sessions.logout(issued.session.id, user.id)

    with pytest.raises(SessionNotFound):
        await sessions.validate(issued.session.id, user.id)
    with pytest.raises(SessionNotFound):
        await sessions.logout(issued.session.id, user.id)


@pytest.mark.asyncio
async def test_list_sessions_newest_first_and_skips_expired(sessions, make_user, clock) -> None:
    user = await make_user("ada")
    oldest = await sessions.issue(user)
    clock.advance(days=2)
    middle = await sessions.issue(user)
    clock.advance(days=2)
    newest = await sessions.issue(user)

    listing = await sessions.list_sessions(user.id)
    assert [s.id for s in listing.sessions] == [newest.session.id, middle.session.id, oldest.session.id]
    assert listing.total == 3

    page = await sessions.list_sessions(user.id, limit=1, offset=1)
    assert [s.id for s in page.sessions] == [middle.session.id]
    assert page.total == 3

    # oldest was issued 7 days and 1 second ago
    clock.advance(days=3, seconds=1)
    listing = await sessions.list_sessions(user.id)
    assert [s.id for s in listing.sessions] == [newest.session.id, middle.session.id]
    assert listing.total == 2


@pytest.mark.asyncio
async def test_list_sessions_only_shows_own(sessions, make_user) -> None:
    ada = await make_user("ada")
    grace = await make_user("grace")
    await sessions.issue(ada)
    await sessions.issue(grace)

    listing = await sessions.list_sessions(ada.id)

    assert listing.total == 1
    assert listing.sessions[0].user_id == ada.id


@pytest.mark.asyncio
async def test_revoke_only_matches_the_named_owner(sessions, make_user) -> None:
    ada = await make_user("ada")
    grace = await make_user("grace")
    issued = await sessions.issue(ada)

    with pytest.raises(SessionNotFound):
        await sessions.revoke(issued.session.id, grace.id)

    await sessions.revoke(issued.session.id, ada.id)
    with pytest.raises(SessionNotFound):
        await sessions.validate(issued.session.id, ada.id)
