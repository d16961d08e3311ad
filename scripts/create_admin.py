"""
Bootstrap an administrator account.

Creates the user as a teller if it does not exist yet, then applies the
admin_granted event through the trust state machine.

Usage:
    python scripts/create_admin.py <username> <password> [email]
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# --- ensure backend/ on sys.path ---
BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from echo_tree import models  # noqa: E402
from echo_tree.config import get_settings  # noqa: E402
from echo_tree.database import AsyncSessionLocal, engine  # noqa: E402
from echo_tree.errors import Conflict  # noqa: E402
from echo_tree.services.sessions import SessionManager  # noqa: E402
from echo_tree.services.trust import TrustEvent, TrustStateMachine  # noqa: E402
from echo_tree.services.users import UserService  # noqa: E402


async def create_admin(username: str, password: str, email: str | None) -> bool:
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        users = UserService(session, SessionManager(session, get_settings()))
        user = await users.get_by_username(username)
        if user is None:
            try:
                user = await users.register(username, password, email)
            except Conflict as exc:
                print(f"Error: {exc.detail}")
                return False
            print(f"Created user '{username}' (id={user.id}).")

        transition = await TrustStateMachine(session).apply(user.id, TrustEvent.ADMIN_GRANTED)
        await session.commit()

    if transition.changed:
        print(f"Granted admin role to '{username}' (was {transition.from_role}).")
    else:
        print(f"'{username}' is already {transition.from_role}; nothing to do.")
    return True


def main() -> None:
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        sys.exit(1)

    username, password = sys.argv[1], sys.argv[2]
    email = sys.argv[3] if len(sys.argv) == 4 else None
    if len(password) < 6:
        print("Error: Password must be at least 6 characters.")
        sys.exit(1)

    ok = asyncio.run(create_admin(username, password, email))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
