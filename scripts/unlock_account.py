"""
Clear the failed-login counter and any temporary lock for one account.

Usage:
    python scripts/unlock_account.py <username>
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# --- ensure backend/ on sys.path ---
BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from echo_tree.config import get_settings  # noqa: E402
from echo_tree.database import AsyncSessionLocal  # noqa: E402
from echo_tree.services.credentials import CredentialStore  # noqa: E402
from echo_tree.services.sessions import SessionManager  # noqa: E402
from echo_tree.services.users import UserService  # noqa: E402


async def unlock(username: str) -> bool:
    async with AsyncSessionLocal() as session:
        settings = get_settings()
        user = await UserService(session, SessionManager(session, settings)).get_by_username(username)
        if user is None:
            print(f"User '{username}' not found")
            return False

        print(f"Current status for '{username}':")
        print(f"  failed attempts: {user.failed_login_attempts}")
        print(f"  locked until:    {user.account_locked_until or 'not locked'}")

        user = await CredentialStore(session, settings).unlock(user)
        print(f"Account '{username}' unlocked (failed attempts: {user.failed_login_attempts}).")
    return True


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    sys.exit(0 if asyncio.run(unlock(sys.argv[1])) else 1)
