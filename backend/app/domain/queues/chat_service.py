"""Group chat reads and message posting for promoted queues."""

from __future__ import annotations

from typing import List, Optional

from app.domain.queues import models, outbox, policy, schemas
from app.domain.queues.store import QueueRepository
from app.infra.auth import AuthenticatedUser
from app.obs import metrics as obs_metrics
from app.settings import settings

DEFAULT_HISTORY_LIMIT = 50


class GroupChatService:
	def __init__(self, repository: QueueRepository | None = None) -> None:
		self._repo = repository or QueueRepository()

	async def list_active_chats(self, auth_user: AuthenticatedUser, *, mine: bool = False) -> List[schemas.GroupChatSummary]:
		chats = await self._repo.list_active_chats(auth_user.id if mine else None)
		return [schemas.GroupChatSummary(**chat.to_summary(viewer_id=auth_user.id)) for chat in chats]

	async def get_chat(self, auth_user: AuthenticatedUser, chat_id: str) -> schemas.GroupChatSummary:
		chat = await self._require_chat(chat_id)
		return schemas.GroupChatSummary(**chat.to_summary(viewer_id=auth_user.id))

	async def list_members(self, auth_user: AuthenticatedUser, chat_id: str) -> List[schemas.GroupChatMember]:
		chat = await self._require_chat(chat_id)
		policy.ensure_chat_member(chat, auth_user.id)
		return [
			schemas.GroupChatMember(id=member, is_creator=member == chat.creator_id)
			for member in chat.members
		]

	async def list_messages(
		self,
		auth_user: AuthenticatedUser,
		chat_id: str,
		*,
		after_seq: Optional[int] = None,
		limit: int = DEFAULT_HISTORY_LIMIT,
	) -> List[schemas.ChatMessageDTO]:
		chat = await self._require_chat(chat_id)
		policy.ensure_chat_member(chat, auth_user.id)
		limit = max(1, min(limit, settings.chat_history_max_limit))
		messages = await self._repo.list_messages(chat_id, after_seq=after_seq, limit=limit)
		return [schemas.ChatMessageDTO(**message.to_dict()) for message in messages]

	async def post_message(
		self,
		auth_user: AuthenticatedUser,
		chat_id: str,
		payload: schemas.ChatMessageSendRequest,
	) -> schemas.ChatMessageDTO:
		chat = await self._require_chat(chat_id)
		policy.ensure_chat_member(chat, auth_user.id)
		text = policy.validate_message(payload.message, payload.type)
		await policy.enforce_send_limit(auth_user.id)
		message = await self._repo.append_message(chat_id, user_id=auth_user.id, message=text, kind=payload.type)
		obs_metrics.inc_chat_message(message.kind)
		await outbox.append_chat_event(
			"message_posted",
			chat_id,
			user_id=auth_user.id,
			meta={"message_id": message.id, "seq": message.seq, "type": message.kind},
		)
		return schemas.ChatMessageDTO(**message.to_dict())

	async def _require_chat(self, chat_id: str) -> models.GroupChat:
		chat = await self._repo.get_chat(chat_id)
		if chat is None:
			raise policy.ChatNotFound()
		return chat
