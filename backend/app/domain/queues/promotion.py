"""Promotion of a queue that reached quorum into a persistent group chat."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from app.domain.queues import models, outbox, quorum
from app.domain.queues.store import QueueRepository
from app.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class PromotionBridge:
	def __init__(self, repository: QueueRepository) -> None:
		self._repo = repository

	async def promote(self, queue: models.GroupChatQueue) -> Optional[models.GroupChat]:
		"""Turn `queue` into a group chat.

		The store re-checks quorum while holding the queue, so a racing caller
		that already promoted (or a member that left in between) yields None.
		"""
		if not quorum.should_promote(queue):
			return None
		chat = await self._repo.promote_queue(queue.id)
		if chat is None:
			_LOG.info("queue.promotion_skipped", extra={"queue_id": queue.id})
			return None
		await self.announce(queue, chat)
		return chat

	async def announce(self, queue: models.GroupChatQueue, chat: models.GroupChat) -> None:
		"""Publish a promotion that the store has already committed."""
		waited = (datetime.now(timezone.utc) - queue.created_at).total_seconds()
		obs_metrics.inc_queue_promoted(chat.intention, waited_seconds=waited)
		_LOG.info(
			"queue.promoted",
			extra={"queue_id": queue.id, "chat_id": chat.id, "member_count": chat.member_count},
		)
		await outbox.append_queue_event(
			"queue_promoted",
			queue.id,
			meta={"chat_id": chat.id, "member_count": chat.member_count},
		)
		await outbox.append_chat_event("chat_created", chat.id, meta={"queue_id": queue.id})
