"""Authentication routes: registration, login and session management."""
from fastapi import APIRouter, Depends, Query, Request, status

from .dependencies import (
    PrincipalDep,
    get_credential_store,
    get_session_manager,
    get_user_service,
)
from .models import User
from .schemas import (
    LoginResponse,
    SessionPage,
    SessionRead,
    SessionView,
    UserCreate,
    UserLogin,
    UserRead,
)
from .services.credentials import CredentialStore
from .services.sessions import SessionManager
from .services.users import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: UserCreate, users: UserService = Depends(get_user_service)
) -> User:
    """Create a teller account."""

    return await users.register(payload.username, payload.password, payload.email)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: UserLogin,
    request: Request,
    credentials: CredentialStore = Depends(get_credential_store),
    sessions: SessionManager = Depends(get_session_manager),
) -> LoginResponse:
    """Authenticate a user and return a JWT bound to a new session record."""

    user = await credentials.verify(payload.username, payload.password)
    issued = await sessions.issue(
        user,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return LoginResponse(
        access_token=issued.token,
        expires_at=issued.session.expires_at,
        user=UserRead.model_validate(user),
        session=SessionRead.model_validate(issued.session),
    )


@router.get("/sessions", response_model=SessionPage)
async def list_sessions(
    principal: PrincipalDep,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionPage:
    """Return the caller's live sessions, newest first."""

    listing = await sessions.list_sessions(principal.user_id, limit=limit, offset=offset)
    return SessionPage(
        sessions=[SessionRead.model_validate(s) for s in listing.sessions],
        total=listing.total,
        limit=listing.limit,
        offset=listing.offset,
    )


@router.get("/sessions/{session_id}", response_model=SessionView)
async def validate_session(
    session_id: str,
    principal: PrincipalDep,
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionView:
    return await sessions.validate(session_id, principal.user_id)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session_id: str,
    principal: PrincipalDep,
    sessions: SessionManager = Depends(get_session_manager),
) -> None:
    """Revoke one of the caller's sessions."""

    await sessions.logout(session_id, principal.user_id)
