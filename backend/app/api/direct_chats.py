"""FastAPI routes for 1:1 direct chats."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.domain.common.errors import DomainError
from app.domain.direct import DirectChatService, schemas
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/api/direct-chats", tags=["direct-chats"])

_direct_service = DirectChatService()


def _as_http_error(exc: DomainError) -> HTTPException:
	return HTTPException(status_code=exc.status_code, detail=exc.as_detail())


@router.post("", response_model=schemas.DirectChatSummary)
async def open_direct_chat_endpoint(
	payload: schemas.DirectChatCreateRequest,
	response: Response,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.DirectChatSummary:
	try:
		chat, created = await _direct_service.open_chat(auth_user, payload)
	except DomainError as exc:
		raise _as_http_error(exc) from exc
	response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
	return chat


@router.get("", response_model=List[schemas.DirectChatSummary])
async def list_direct_chats_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.DirectChatSummary]:
	return await _direct_service.list_chats(auth_user)


@router.get("/{chat_id}", response_model=schemas.DirectChatSummary)
async def get_direct_chat_endpoint(
	chat_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.DirectChatSummary:
	try:
		return await _direct_service.get_chat(auth_user, chat_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@router.get("/{chat_id}/messages", response_model=List[schemas.DirectMessageDTO])
async def list_direct_messages_endpoint(
	chat_id: str,
	limit: int = Query(default=50, ge=1, le=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.DirectMessageDTO]:
	try:
		return await _direct_service.list_messages(auth_user, chat_id, limit=limit)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@router.post("/{chat_id}/messages", response_model=schemas.DirectMessageDTO, status_code=status.HTTP_201_CREATED)
async def send_direct_message_endpoint(
	chat_id: str,
	payload: schemas.DirectMessageSendRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.DirectMessageDTO:
	try:
		return await _direct_service.send_message(auth_user, chat_id, payload)
	except DomainError as exc:
		raise _as_http_error(exc) from exc
