"""Authoring endpoints that run through the content screens."""
from fastapi import APIRouter, Depends, status

from ..dependencies import PrincipalDep, get_content_authoring
from ..models import Message, Reply
from ..schemas import ContentCreate, MessageRead, ReplyRead
from ..services.authoring import ContentAuthoring

router = APIRouter(tags=["content"])


@router.post(
    "/notes/{note_id}/replies", response_model=ReplyRead, status_code=status.HTTP_201_CREATED
)
async def create_reply(
    note_id: str,
    payload: ContentCreate,
    principal: PrincipalDep,
    authoring: ContentAuthoring = Depends(get_content_authoring),
) -> Reply:
    """Post a healer reply; harmful replies are refused and counted."""

    return await authoring.create_reply(note_id, principal.user_id, principal.role, payload.content)


@router.post(
    "/chats/{chat_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED
)
async def create_message(
    chat_id: str,
    payload: ContentCreate,
    principal: PrincipalDep,
    authoring: ContentAuthoring = Depends(get_content_authoring),
) -> Message:
    return await authoring.create_message(chat_id, principal.user_id, payload.content)
