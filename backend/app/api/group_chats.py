"""FastAPI routes for group chat queues and the chats they promote into."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.domain.common.errors import DomainError
from app.domain.queues import GroupChatService, QueueService, schemas
from app.infra.auth import AuthenticatedUser, get_current_user

queues_router = APIRouter(prefix="/api/group-chat-queues", tags=["group-chat-queues"])
chats_router = APIRouter(prefix="/api/group-chats", tags=["group-chats"])

_queue_service = QueueService()
_chat_service = GroupChatService()


def _as_http_error(exc: DomainError) -> HTTPException:
	return HTTPException(status_code=exc.status_code, detail=exc.as_detail())


@queues_router.post("", response_model=schemas.QueueSummary, status_code=status.HTTP_201_CREATED)
async def create_queue_endpoint(
	payload: schemas.QueueCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.QueueSummary:
	try:
		return await _queue_service.create_queue(auth_user, payload)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@queues_router.get("", response_model=List[schemas.QueueSummary])
async def list_queues_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.QueueSummary]:
	return await _queue_service.list_queues(auth_user)


@queues_router.get("/{queue_id}", response_model=schemas.QueueSummary)
async def get_queue_endpoint(
	queue_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.QueueSummary:
	try:
		return await _queue_service.get_queue(auth_user, queue_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@queues_router.post("/{queue_id}/join", response_model=schemas.QueueSummary)
async def join_queue_endpoint(
	queue_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.QueueSummary:
	try:
		return await _queue_service.join_queue(auth_user, queue_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@queues_router.post("/{queue_id}/leave", response_model=schemas.QueueSummary)
async def leave_queue_endpoint(
	queue_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.QueueSummary:
	try:
		return await _queue_service.leave_queue(auth_user, queue_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@queues_router.delete("/{queue_id}", status_code=status.HTTP_200_OK)
async def cancel_queue_endpoint(
	queue_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		await _queue_service.cancel_queue(auth_user, queue_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc
	return {"ok": True}


@chats_router.get("/active", response_model=List[schemas.GroupChatSummary])
async def list_active_chats_endpoint(
	mine: bool = Query(default=False),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.GroupChatSummary]:
	return await _chat_service.list_active_chats(auth_user, mine=mine)


@chats_router.get("/{chat_id}", response_model=schemas.GroupChatSummary)
async def get_chat_endpoint(
	chat_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.GroupChatSummary:
	try:
		return await _chat_service.get_chat(auth_user, chat_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@chats_router.get("/{chat_id}/members", response_model=List[schemas.GroupChatMember])
async def list_chat_members_endpoint(
	chat_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.GroupChatMember]:
	try:
		return await _chat_service.list_members(auth_user, chat_id)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@chats_router.get("/{chat_id}/messages", response_model=List[schemas.ChatMessageDTO])
async def list_chat_messages_endpoint(
	chat_id: str,
	after: Optional[int] = Query(default=None, ge=0),
	limit: int = Query(default=50, ge=1, le=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.ChatMessageDTO]:
	try:
		return await _chat_service.list_messages(auth_user, chat_id, after_seq=after, limit=limit)
	except DomainError as exc:
		raise _as_http_error(exc) from exc


@chats_router.post("/{chat_id}/messages", response_model=schemas.ChatMessageDTO, status_code=status.HTTP_201_CREATED)
async def post_chat_message_endpoint(
	chat_id: str,
	payload: schemas.ChatMessageSendRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ChatMessageDTO:
	try:
		return await _chat_service.post_message(auth_user, chat_id, payload)
	except DomainError as exc:
		raise _as_http_error(exc) from exc
