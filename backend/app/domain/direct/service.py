"""Direct chat service layer."""

from __future__ import annotations

import logging
from typing import List, Tuple

from app.domain.direct import models, policy, schemas
from app.domain.direct.store import DirectChatRepository
from app.domain.queues import outbox
from app.domain.queues.policy import enforce_send_limit
from app.infra.auth import AuthenticatedUser
from app.obs import metrics as obs_metrics
from app.settings import settings

_LOG = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class DirectChatService:
	def __init__(self, repository: DirectChatRepository | None = None) -> None:
		self._repo = repository or DirectChatRepository()

	async def open_chat(
		self,
		auth_user: AuthenticatedUser,
		payload: schemas.DirectChatCreateRequest,
	) -> Tuple[schemas.DirectChatSummary, bool]:
		"""Create the chat with `recipient_id`, or return the existing one.

		The second element tells the caller whether a new chat was created.
		"""
		recipient = policy.ensure_distinct(auth_user.id, payload.recipient_id)
		key = models.PairKey.from_participants(auth_user.id, recipient)
		chat, created = await self._repo.get_or_create(key)
		if created:
			obs_metrics.inc_direct_chat_created()
			_LOG.info("direct_chat.created", extra={"chat_id": chat.id})
			await outbox.append_chat_event("direct_chat_created", chat.id, user_id=auth_user.id)
		return schemas.DirectChatSummary(**chat.to_summary(auth_user.id)), created

	async def list_chats(self, auth_user: AuthenticatedUser) -> List[schemas.DirectChatSummary]:
		chats = await self._repo.list_for_user(auth_user.id)
		return [schemas.DirectChatSummary(**chat.to_summary(auth_user.id)) for chat in chats]

	async def get_chat(self, auth_user: AuthenticatedUser, chat_id: str) -> schemas.DirectChatSummary:
		chat = await self._require_participant(auth_user, chat_id)
		return schemas.DirectChatSummary(**chat.to_summary(auth_user.id))

	async def list_messages(
		self,
		auth_user: AuthenticatedUser,
		chat_id: str,
		*,
		limit: int = DEFAULT_HISTORY_LIMIT,
	) -> List[schemas.DirectMessageDTO]:
		await self._require_participant(auth_user, chat_id)
		limit = max(1, min(limit, settings.chat_history_max_limit))
		messages = await self._repo.list_messages(chat_id, limit=limit)
		return [schemas.DirectMessageDTO(**message.to_dict()) for message in messages]

	async def send_message(
		self,
		auth_user: AuthenticatedUser,
		chat_id: str,
		payload: schemas.DirectMessageSendRequest,
	) -> schemas.DirectMessageDTO:
		await self._require_participant(auth_user, chat_id)
		text = policy.validate_message(payload.message)
		await enforce_send_limit(auth_user.id)
		message = await self._repo.append_message(chat_id, auth_user.id, text)
		obs_metrics.inc_chat_message("direct")
		await outbox.append_chat_event(
			"message_posted",
			chat_id,
			user_id=auth_user.id,
			meta={"message_id": message.id, "type": "direct"},
		)
		return schemas.DirectMessageDTO(**message.to_dict())

	async def _require_participant(self, auth_user: AuthenticatedUser, chat_id: str) -> models.DirectChat:
		chat = await self._repo.get_chat(chat_id)
		if chat is None:
			raise policy.DirectChatNotFound()
		policy.ensure_participant(chat, auth_user.id)
		return chat
