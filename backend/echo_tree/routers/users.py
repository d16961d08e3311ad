"""Account endpoints for the caller and for administrators."""
from fastapi import APIRouter, Depends, Query, status

from ..dependencies import (
    AdminDep,
    PrincipalDep,
    ensure_self_or_admin,
    get_session_manager,
    get_trust_state_machine,
    get_user_service,
)
from ..errors import Conflict
from ..models import AccountStatus, User
from ..schemas import SessionPage, SessionRead, StatusUpdate, UserRead, UserUpdate
from ..services.sessions import SessionManager
from ..services.trust import TrustEvent, TrustStateMachine
from ..services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def read_me(principal: PrincipalDep, users: UserService = Depends(get_user_service)) -> User:
    return await users.get(principal.user_id)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(principal: PrincipalDep, users: UserService = Depends(get_user_service)) -> None:
    """Soft-delete the caller's account and revoke all of its sessions."""

    await users.delete_account(principal.user_id)


@router.patch("/{user_id}", response_model=UserRead)
async def update_profile(
    user_id: int,
    payload: UserUpdate,
    principal: PrincipalDep,
    users: UserService = Depends(get_user_service),
) -> User:
    """Change password or email; owners edit themselves, admins anyone."""

    ensure_self_or_admin(principal, user_id)
    return await users.update_profile(user_id, payload.model_dump(exclude_unset=True))


@router.get("/{user_id}/sessions", response_model=SessionPage)
async def list_user_sessions(
    user_id: int,
    principal: PrincipalDep,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionPage:
    ensure_self_or_admin(principal, user_id)
    listing = await sessions.list_sessions(user_id, limit=limit, offset=offset)
    return SessionPage(
        sessions=[SessionRead.model_validate(s) for s in listing.sessions],
        total=listing.total,
        limit=listing.limit,
        offset=listing.offset,
    )


@router.delete("/{user_id}/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_user_session(
    user_id: int,
    session_id: str,
    principal: PrincipalDep,
    sessions: SessionManager = Depends(get_session_manager),
) -> None:
    """Revoke one session of ``user_id`` (owner or admin)."""

    ensure_self_or_admin(principal, user_id)
    await sessions.revoke(session_id, user_id)


@router.put("/{user_id}/status", response_model=UserRead)
async def update_status(
    user_id: int,
    payload: StatusUpdate,
    admin: AdminDep,
    users: UserService = Depends(get_user_service),
) -> User:
    """Suspend, ban, reactivate or delete an account (admin only)."""

    return await users.set_status(user_id, payload.status)


@router.post("/{user_id}/reinstate", response_model=UserRead)
async def reinstate_healer(
    user_id: int,
    admin: AdminDep,
    users: UserService = Depends(get_user_service),
    trust: TrustStateMachine = Depends(get_trust_state_machine),
) -> User:
    """Restore healer status to a demoted teller (admin only)."""

    user = await users.get(user_id)
    if user.status != AccountStatus.ACTIVE.value:
        raise Conflict(f"Account is {user.status}; only active accounts can be reinstated")

    transition = await trust.apply(user_id, TrustEvent.HEALER_REINSTATED)
    if not transition.changed:
        raise Conflict(f"User is {transition.from_role}; only tellers can be reinstated")
    await users.session.commit()
    return await users.get(user_id)
