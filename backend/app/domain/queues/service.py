"""Queue lifecycle service layer."""

from __future__ import annotations

import logging
from typing import List

from app.domain.queues import outbox, policy, schemas
from app.domain.queues.locks import KeyedLocks
from app.domain.queues.promotion import PromotionBridge
from app.domain.queues.store import QueueRepository
from app.infra.auth import AuthenticatedUser
from app.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

# Mutations of one queue run one at a time; different queues proceed in parallel.
_QUEUE_LOCKS = KeyedLocks()


class QueueService:
	def __init__(self, repository: QueueRepository | None = None, bridge: PromotionBridge | None = None) -> None:
		self._repo = repository or QueueRepository()
		self._bridge = bridge or PromotionBridge(self._repo)

	async def create_queue(self, auth_user: AuthenticatedUser, payload: schemas.QueueCreateRequest) -> schemas.QueueSummary:
		title, description = policy.validate_queue_request(
			payload.title,
			payload.description,
			payload.intention,
			payload.min_people,
			payload.max_people,
		)
		await policy.enforce_create_limit(auth_user.id)
		queue = await self._repo.create_queue(
			creator_id=auth_user.id,
			title=title,
			description=description,
			intention=payload.intention,
			min_people=payload.min_people,
			max_people=payload.max_people,
		)
		obs_metrics.inc_queue_created(queue.intention)
		_LOG.info("queue.created", extra={"queue_id": queue.id, "intention": queue.intention})
		await outbox.append_queue_event(
			"queue_created",
			queue.id,
			user_id=auth_user.id,
			meta={"intention": queue.intention, "min_people": queue.min_people, "max_people": queue.max_people},
		)
		return schemas.QueueSummary(**queue.to_summary(viewer_id=auth_user.id))

	async def list_queues(self, auth_user: AuthenticatedUser) -> List[schemas.QueueSummary]:
		queues = await self._repo.list_active_queues()
		return [schemas.QueueSummary(**queue.to_summary(viewer_id=auth_user.id)) for queue in queues]

	async def get_queue(self, auth_user: AuthenticatedUser, queue_id: str) -> schemas.QueueSummary:
		queue = await self._repo.get_queue(queue_id)
		if queue is None:
			raise policy.QueueNotFound()
		return schemas.QueueSummary(**queue.to_summary(viewer_id=auth_user.id))

	async def join_queue(self, auth_user: AuthenticatedUser, queue_id: str) -> schemas.QueueSummary:
		"""Join a queue and promote it when the join completes its quorum.

		The store adds the member and promotes in one step, so clients never
		see a queue that has reached its minimum. Events go out afterwards.
		"""
		async with _QUEUE_LOCKS.hold(queue_id):
			try:
				queue, added, chat = await self._repo.add_member(queue_id, auth_user.id)
			except policy.QueueFull:
				obs_metrics.inc_queue_join("full")
				raise
			except policy.QueueNotFound:
				obs_metrics.inc_queue_join("not_found")
				raise
		if added:
			obs_metrics.inc_queue_join("joined")
			_LOG.info("queue.member_joined", extra={"queue_id": queue_id, "member_count": queue.current_count})
			await outbox.append_queue_event("member_joined", queue_id, user_id=auth_user.id)
		else:
			obs_metrics.inc_queue_join("already_member")
		if chat is None:
			return schemas.QueueSummary(**queue.to_summary(viewer_id=auth_user.id))
		await self._bridge.announce(queue, chat)
		return schemas.QueueSummary(**queue.to_summary(viewer_id=auth_user.id, status="promoted", chat_id=chat.id))

	async def leave_queue(self, auth_user: AuthenticatedUser, queue_id: str) -> schemas.QueueSummary:
		"""Leave a queue. The last member leaving cancels it."""
		async with _QUEUE_LOCKS.hold(queue_id):
			before = await self._repo.get_queue(queue_id)
			if before is None:
				raise policy.QueueNotFound()
			queue, removed = await self._repo.remove_member(queue_id, auth_user.id)
			if not removed:
				return schemas.QueueSummary(**before.to_summary(viewer_id=auth_user.id))
			obs_metrics.inc_queue_leave()
			await outbox.append_queue_event("member_left", queue_id, user_id=auth_user.id)
			if queue is None:
				obs_metrics.inc_queue_cancelled("emptied")
				_LOG.info("queue.emptied", extra={"queue_id": queue_id})
				await outbox.append_queue_event("queue_cancelled", queue_id, meta={"reason": "emptied"})
				before.members = []
				return schemas.QueueSummary(**before.to_summary(viewer_id=auth_user.id, status="cancelled"))
			return schemas.QueueSummary(**queue.to_summary(viewer_id=auth_user.id))

	async def cancel_queue(self, auth_user: AuthenticatedUser, queue_id: str) -> None:
		async with _QUEUE_LOCKS.hold(queue_id):
			queue = await self._repo.get_queue(queue_id)
			if queue is None:
				raise policy.QueueNotFound()
			policy.ensure_can_cancel(queue, auth_user.id)
			deleted = await self._repo.delete_queue(queue_id)
			if deleted is None:
				raise policy.QueueNotFound()
		obs_metrics.inc_queue_cancelled("creator")
		_LOG.info("queue.cancelled", extra={"queue_id": queue_id})
		await outbox.append_queue_event("queue_cancelled", queue_id, user_id=auth_user.id, meta={"reason": "creator"})
