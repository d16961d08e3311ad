"""Account lifecycle and profile updates."""
import pytest

from echo_tree.errors import Conflict, NotFound
from echo_tree.security import verify_password
from echo_tree.services.sessions import SessionManager
from echo_tree.services.users import UserService


@pytest.fixture
def users(db_session, settings, clock) -> UserService:
    return UserService(db_session, SessionManager(db_session, settings, clock))


@pytest.mark.asyncio
async def test_update_profile_hashes_new_password(users, make_user) -> None:
    user = await make_user("ada")

    updated = await users.update_profile(user.id, {"password": "fresh-secret"})

    assert updated.password_hash != "fresh-secret"
    assert verify_password("fresh-secret", updated.password_hash)
    assert not verify_password("secret123", updated.password_hash)


@pytest.mark.asyncio
async def test_update_profile_only_touches_sent_fields(users, make_user) -> None:
    user = await make_user("ada")
    await users.update_profile(user.id, {"email": "ada@example.com"})
    password_hash = user.password_hash

    await users.update_profile(user.id, {})
    assert user.email == "ada@example.com"
    assert user.password_hash == password_hash

    await users.update_profile(user.id, {"email": None})
    assert user.email is None


@pytest.mark.asyncio
async def test_update_profile_rejects_deleted_and_missing_users(users, make_user) -> None:
    user = await make_user("ada")
    await users.delete_account(user.id)

    with pytest.raises(Conflict):
        await users.update_profile(user.id, {"email": "ada@example.com"})
    with pytest.raises(NotFound):
        await users.update_profile(9999, {})


@pytest.mark.asyncio
async def test_deleted_account_cannot_be_restored(users, make_user) -> None:
    user = await make_user("ada")
    await users.delete_account(user.id)

    with pytest.raises(Conflict):
        await users.set_status(user.id, "active")
