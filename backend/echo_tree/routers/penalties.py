"""Violation penalties: owners read their own record, admins manage all of them."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import (
    AdminDep,
    PrincipalDep,
    ensure_self_or_admin,
    get_penalty_engine,
    get_user_service,
)
from ..models import Penalty
from ..schemas import PenaltyPage, PenaltyRead, ViolationCreate
from ..services.penalties import PenaltyEngine
from ..services.users import UserService

router = APIRouter(prefix="/penalties", tags=["penalties"])


@router.get("/", response_model=PenaltyPage)
async def list_penalties(
    admin: AdminDep,
    alert_sent: Optional[bool] = None,
    healer_status_removed: Optional[bool] = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    penalties: PenaltyEngine = Depends(get_penalty_engine),
) -> PenaltyPage:
    listing = await penalties.list_penalties(
        alert_sent=alert_sent,
        healer_status_removed=healer_status_removed,
        limit=limit,
        offset=offset,
    )
    return PenaltyPage(
        penalties=[PenaltyRead.model_validate(p) for p in listing.penalties],
        total=listing.total,
        limit=listing.limit,
        offset=listing.offset,
    )


@router.get("/{user_id}", response_model=Optional[PenaltyRead])
async def read_penalty(
    user_id: int, principal: PrincipalDep, penalties: PenaltyEngine = Depends(get_penalty_engine)
) -> Optional[Penalty]:
    """A user's own penalty record, or null before their first violation."""

    ensure_self_or_admin(principal, user_id)
    return await penalties.get_penalty(user_id)


@router.post(
    "/{user_id}/violations", response_model=PenaltyRead, status_code=status.HTTP_201_CREATED
)
async def record_violation(
    user_id: int,
    payload: ViolationCreate,
    admin: AdminDep,
    penalties: PenaltyEngine = Depends(get_penalty_engine),
    users: UserService = Depends(get_user_service),
) -> Penalty:
    """Record a violation found outside automatic moderation, e.g. on report review."""

    await users.get(user_id)
    return await penalties.record_violation(
        user_id, {"reason": payload.reason, "recorded_by": admin.user_id}
    )


@router.post("/{user_id}/reset", response_model=PenaltyRead)
async def reset_penalty(
    user_id: int, admin: AdminDep, penalties: PenaltyEngine = Depends(get_penalty_engine)
) -> Penalty:
    """Clear the counter and latches; a demoted healer stays a teller."""

    return await penalties.reset(user_id)
