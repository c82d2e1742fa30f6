"""Membership store for queues, promoted chats, and chat messages.

Every mutation is a single atomic step: the memory store runs it under one
lock with no awaits inside, the Postgres path runs it in one transaction that
row-locks the queue (`SELECT ... FOR UPDATE`).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import asyncpg
import ulid

from app.domain.queues import models, policy, quorum
from app.infra.postgres import get_pool

_LOG = logging.getLogger(__name__)

PROMOTION_NOTICE = "Your group is ready! {count} people joined for {title}."


class _MemoryStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.queues: Dict[str, models.GroupChatQueue] = {}
		self.chats: Dict[str, models.GroupChat] = {}
		self.chat_by_queue: Dict[str, str] = {}
		self.messages: Dict[str, List[models.GroupChatMessage]] = {}

	def reset(self) -> None:
		self._lock = asyncio.Lock()
		self.queues.clear()
		self.chats.clear()
		self.chat_by_queue.clear()
		self.messages.clear()

	async def create_queue(self, queue: models.GroupChatQueue) -> models.GroupChatQueue:
		async with self._lock:
			self.queues[queue.id] = queue.snapshot()
			return queue.snapshot()

	async def get_queue(self, queue_id: str) -> Optional[models.GroupChatQueue]:
		async with self._lock:
			queue = self.queues.get(queue_id)
			return queue.snapshot() if queue else None

	async def add_member(
		self, queue_id: str, user_id: str, chat_id: str, now: datetime
	) -> Tuple[models.GroupChatQueue, bool, Optional[models.GroupChat]]:
		async with self._lock:
			queue = self.queues.get(queue_id)
			if queue is None:
				raise policy.QueueNotFound()
			added = not queue.has_member(user_id)
			if added:
				policy.ensure_can_join(queue, user_id)
			candidate = queue.snapshot()
			if added:
				candidate.members.append(user_id)
			if not quorum.should_promote(candidate):
				self.queues[queue_id] = candidate
				return candidate.snapshot(), added, None
			chat = self._promote_locked(candidate, chat_id, now)
			return candidate, added, chat

	def _promote_locked(self, queue: models.GroupChatQueue, chat_id: str, now: datetime) -> models.GroupChat:
		# Build every record before touching state so a failure leaves the queue as it was.
		chat = _chat_from_queue(queue, chat_id, now)
		notice = _promotion_message(chat, seq=1)
		del self.queues[queue.id]
		self.chats[chat.id] = chat
		self.chat_by_queue[queue.id] = chat.id
		self.messages[chat.id] = [notice]
		return chat.snapshot()

	async def remove_member(self, queue_id: str, user_id: str) -> Tuple[Optional[models.GroupChatQueue], bool]:
		async with self._lock:
			queue = self.queues.get(queue_id)
			if queue is None:
				raise policy.QueueNotFound()
			if not queue.has_member(user_id):
				return queue.snapshot(), False
			queue.members.remove(user_id)
			if not queue.members:
				del self.queues[queue_id]
				return None, True
			return queue.snapshot(), True

	async def delete_queue(self, queue_id: str) -> Optional[models.GroupChatQueue]:
		async with self._lock:
			queue = self.queues.pop(queue_id, None)
			return queue.snapshot() if queue else None

	async def promote_queue(self, queue_id: str, chat_id: str, now: datetime) -> Optional[models.GroupChat]:
		async with self._lock:
			queue = self.queues.get(queue_id)
			if queue is None or queue_id in self.chat_by_queue:
				return None
			if not quorum.should_promote(queue):
				return None
			return self._promote_locked(queue, chat_id, now)

	async def list_queues(self) -> List[models.GroupChatQueue]:
		async with self._lock:
			queues = [queue.snapshot() for queue in self.queues.values()]
		queues.sort(key=lambda q: (q.created_at, q.id), reverse=True)
		return queues

	async def get_chat(self, chat_id: str) -> Optional[models.GroupChat]:
		async with self._lock:
			chat = self.chats.get(chat_id)
			return chat.snapshot() if chat else None

	async def list_chats(self, member_id: Optional[str] = None) -> List[models.GroupChat]:
		async with self._lock:
			chats = [
				chat.snapshot()
				for chat in self.chats.values()
				if member_id is None or chat.has_member(member_id)
			]
		chats.sort(key=lambda c: (c.created_at, c.id), reverse=True)
		return chats

	async def append_message(
		self,
		chat_id: str,
		*,
		user_id: Optional[str],
		message: str,
		kind: str,
		now: datetime,
	) -> models.GroupChatMessage:
		async with self._lock:
			if chat_id not in self.chats:
				raise policy.ChatNotFound()
			items = self.messages.setdefault(chat_id, [])
			entry = models.GroupChatMessage(
				id=str(ulid.new()),
				chat_id=chat_id,
				seq=items[-1].seq + 1 if items else 1,
				user_id=user_id,
				message=message,
				kind=kind,
				created_at=now,
			)
			items.append(entry)
			return entry

	async def list_messages(self, chat_id: str, *, after_seq: Optional[int], limit: int) -> List[models.GroupChatMessage]:
		async with self._lock:
			items = list(self.messages.get(chat_id, []))
		if after_seq is not None:
			return [m for m in items if m.seq > after_seq][:limit]
		return items[-limit:]


_MEMORY = _MemoryStore()


def _chat_from_queue(queue: models.GroupChatQueue, chat_id: str, now: datetime) -> models.GroupChat:
	return models.GroupChat(
		id=chat_id,
		queue_id=queue.id,
		title=queue.title,
		description=queue.description,
		intention=queue.intention,
		creator_id=queue.creator_id,
		created_at=now,
		members=list(queue.members),
	)


def _promotion_message(chat: models.GroupChat, *, seq: int) -> models.GroupChatMessage:
	return models.GroupChatMessage(
		id=str(ulid.new()),
		chat_id=chat.id,
		seq=seq,
		user_id=None,
		message=PROMOTION_NOTICE.format(count=chat.member_count, title=chat.title),
		kind="system",
		created_at=chat.created_at,
	)


async def _insert_chat(conn, queue: models.GroupChatQueue, chat_id: str, now: datetime) -> models.GroupChat:
	"""Write the chat, its members and the notice, then drop the queue. Caller holds the transaction."""
	chat = _chat_from_queue(queue, chat_id, now)
	await conn.execute(
		"""
		INSERT INTO group_chats (id, queue_id, title, description, intention, creator_id, created_at)
		VALUES ($1,$2,$3,$4,$5,$6,$7)
		""",
		chat.id,
		chat.queue_id,
		chat.title,
		chat.description,
		chat.intention,
		chat.creator_id,
		chat.created_at,
	)
	await conn.executemany(
		"INSERT INTO group_chat_members (chat_id, user_id) VALUES ($1,$2)",
		[(chat.id, member) for member in chat.members],
	)
	notice = _promotion_message(chat, seq=1)
	await conn.execute(
		"""
		INSERT INTO group_chat_messages (id, chat_id, seq, user_id, message, kind, created_at)
		VALUES ($1,$2,$3,$4,$5,$6,$7)
		""",
		notice.id,
		chat.id,
		notice.seq,
		None,
		notice.message,
		notice.kind,
		notice.created_at,
	)
	await conn.execute("DELETE FROM group_chat_queues WHERE id=$1", queue.id)
	return chat


_QUEUE_SELECT = """
	SELECT q.*,
		COALESCE(
			array_agg(m.user_id ORDER BY m.member_seq) FILTER (WHERE m.user_id IS NOT NULL),
			'{}'
		) AS members
	FROM group_chat_queues q
	LEFT JOIN group_chat_queue_members m ON m.queue_id = q.id
"""

_CHAT_SELECT = """
	SELECT c.*,
		COALESCE(
			array_agg(m.user_id ORDER BY m.member_seq) FILTER (WHERE m.user_id IS NOT NULL),
			'{}'
		) AS members
	FROM group_chats c
	LEFT JOIN group_chat_members m ON m.chat_id = c.id
"""


class QueueRepository:
	def __init__(self) -> None:
		self._pool_checked = False
		self._pool_instance: Optional[asyncpg.Pool] = None

	async def _get_pool(self) -> Optional[asyncpg.Pool]:
		if self._pool_checked:
			return self._pool_instance
		self._pool_checked = True
		try:
			pool = await get_pool()
		except Exception:
			_LOG.warning("queue_store.memory_fallback", exc_info=True)
			pool = None
		self._pool_instance = pool
		return pool

	async def create_queue(
		self,
		*,
		creator_id: str,
		title: str,
		description: Optional[str],
		intention: str,
		min_people: int,
		max_people: int,
	) -> models.GroupChatQueue:
		queue = models.GroupChatQueue(
			id=str(ulid.new()),
			title=title,
			description=description,
			intention=intention,
			min_people=min_people,
			max_people=max_people,
			creator_id=creator_id,
			created_at=datetime.now(timezone.utc),
			members=[creator_id],
		)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.create_queue(queue)
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"""
					INSERT INTO group_chat_queues (id, title, description, intention, min_people, max_people, creator_id, created_at)
					VALUES ($1,$2,$3,$4,$5,$6,$7,$8)
					""",
					queue.id,
					title,
					description,
					intention,
					min_people,
					max_people,
					creator_id,
					queue.created_at,
				)
				await conn.execute(
					"INSERT INTO group_chat_queue_members (queue_id, user_id) VALUES ($1,$2)",
					queue.id,
					creator_id,
				)
		return queue

	async def get_queue(self, queue_id: str) -> Optional[models.GroupChatQueue]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.get_queue(queue_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(_QUEUE_SELECT + " WHERE q.id = $1 GROUP BY q.id", queue_id)
			return _row_to_queue(row) if row else None

	async def list_active_queues(self) -> List[models.GroupChatQueue]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.list_queues()
		async with pool.acquire() as conn:
			rows = await conn.fetch(_QUEUE_SELECT + " GROUP BY q.id ORDER BY q.created_at DESC, q.id DESC")
			return [_row_to_queue(row) for row in rows]

	async def add_member(
		self, queue_id: str, user_id: str
	) -> Tuple[models.GroupChatQueue, bool, Optional[models.GroupChat]]:
		"""Add a member and promote on quorum as one step.

		Returns (queue, added, chat). Joining twice adds nothing, but a queue
		that already meets its minimum is still promoted by the repeat join.
		"""
		chat_id = str(ulid.new())
		now = datetime.now(timezone.utc)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.add_member(queue_id, user_id, chat_id, now)
		async with pool.acquire() as conn:
			async with conn.transaction():
				queue = await _lock_queue(conn, queue_id)
				if queue is None:
					raise policy.QueueNotFound()
				added = not queue.has_member(user_id)
				if added:
					policy.ensure_can_join(queue, user_id)
					await conn.execute(
						"INSERT INTO group_chat_queue_members (queue_id, user_id) VALUES ($1,$2)",
						queue_id,
						user_id,
					)
					queue.members.append(user_id)
				if not quorum.should_promote(queue):
					return queue, added, None
				chat = await _insert_chat(conn, queue, chat_id, now)
				return queue, added, chat

	async def remove_member(self, queue_id: str, user_id: str) -> Tuple[Optional[models.GroupChatQueue], bool]:
		"""Remove a member, returning (queue, removed); queue is None once the last member leaves."""
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.remove_member(queue_id, user_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				queue = await _lock_queue(conn, queue_id)
				if queue is None:
					raise policy.QueueNotFound()
				if not queue.has_member(user_id):
					return queue, False
				queue.members.remove(user_id)
				if not queue.members:
					await conn.execute("DELETE FROM group_chat_queues WHERE id=$1", queue_id)
					return None, True
				await conn.execute(
					"DELETE FROM group_chat_queue_members WHERE queue_id=$1 AND user_id=$2",
					queue_id,
					user_id,
				)
				return queue, True

	async def delete_queue(self, queue_id: str) -> Optional[models.GroupChatQueue]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.delete_queue(queue_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				queue = await _lock_queue(conn, queue_id)
				if queue is None:
					return None
				await conn.execute("DELETE FROM group_chat_queues WHERE id=$1", queue_id)
				return queue

	async def promote_queue(self, queue_id: str) -> Optional[models.GroupChat]:
		"""Create the chat and delete the queue in one step.

		Returns None when the queue is already gone or no longer meets its
		minimum, so a second promotion attempt is a no-op.
		"""
		chat_id = str(ulid.new())
		now = datetime.now(timezone.utc)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.promote_queue(queue_id, chat_id, now)
		async with pool.acquire() as conn:
			async with conn.transaction():
				queue = await _lock_queue(conn, queue_id)
				if queue is None or not quorum.should_promote(queue):
					return None
				return await _insert_chat(conn, queue, chat_id, now)

	async def get_chat(self, chat_id: str) -> Optional[models.GroupChat]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.get_chat(chat_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(_CHAT_SELECT + " WHERE c.id = $1 GROUP BY c.id", chat_id)
			return _row_to_chat(row) if row else None

	async def list_active_chats(self, member_id: Optional[str] = None) -> List[models.GroupChat]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.list_chats(member_id)
		async with pool.acquire() as conn:
			if member_id is None:
				rows = await conn.fetch(_CHAT_SELECT + " GROUP BY c.id ORDER BY c.created_at DESC, c.id DESC")
			else:
				rows = await conn.fetch(
					_CHAT_SELECT
					+ """
					WHERE EXISTS (SELECT 1 FROM group_chat_members x WHERE x.chat_id = c.id AND x.user_id = $1)
					GROUP BY c.id ORDER BY c.created_at DESC, c.id DESC
					""",
					member_id,
				)
			return [_row_to_chat(row) for row in rows]

	async def append_message(self, chat_id: str, *, user_id: Optional[str], message: str, kind: str) -> models.GroupChatMessage:
		now = datetime.now(timezone.utc)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.append_message(chat_id, user_id=user_id, message=message, kind=kind, now=now)
		async with pool.acquire() as conn:
			async with conn.transaction():
				chat_row = await conn.fetchrow("SELECT id FROM group_chats WHERE id=$1 FOR UPDATE", chat_id)
				if chat_row is None:
					raise policy.ChatNotFound()
				last_seq = await conn.fetchval(
					"SELECT COALESCE(MAX(seq), 0) FROM group_chat_messages WHERE chat_id=$1",
					chat_id,
				)
				row = await conn.fetchrow(
					"""
					INSERT INTO group_chat_messages (id, chat_id, seq, user_id, message, kind, created_at)
					VALUES ($1,$2,$3,$4,$5,$6,$7)
					RETURNING *
					""",
					str(ulid.new()),
					chat_id,
					int(last_seq) + 1,
					user_id,
					message,
					kind,
					now,
				)
			return _row_to_message(row)

	async def list_messages(self, chat_id: str, *, after_seq: Optional[int], limit: int) -> List[models.GroupChatMessage]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.list_messages(chat_id, after_seq=after_seq, limit=limit)
		async with pool.acquire() as conn:
			if after_seq is not None:
				rows = await conn.fetch(
					"SELECT * FROM group_chat_messages WHERE chat_id=$1 AND seq>$2 ORDER BY seq ASC LIMIT $3",
					chat_id,
					after_seq,
					limit,
				)
			else:
				rows = await conn.fetch(
					"SELECT * FROM group_chat_messages WHERE chat_id=$1 ORDER BY seq DESC LIMIT $2",
					chat_id,
					limit,
				)
				rows = list(reversed(rows))
		return [_row_to_message(row) for row in rows]


async def _lock_queue(conn: asyncpg.Connection, queue_id: str) -> Optional[models.GroupChatQueue]:
	row = await conn.fetchrow("SELECT * FROM group_chat_queues WHERE id=$1 FOR UPDATE", queue_id)
	if row is None:
		return None
	members = await conn.fetch(
		"SELECT user_id FROM group_chat_queue_members WHERE queue_id=$1 ORDER BY member_seq",
		queue_id,
	)
	return _row_to_queue(row, [str(m["user_id"]) for m in members])


def _row_to_queue(row: asyncpg.Record, members: Optional[List[str]] = None) -> models.GroupChatQueue:
	if members is None:
		members = [str(m) for m in row["members"]]
	return models.GroupChatQueue(
		id=str(row["id"]),
		title=row["title"],
		description=row["description"],
		intention=row["intention"],
		min_people=int(row["min_people"]),
		max_people=int(row["max_people"]),
		creator_id=str(row["creator_id"]),
		created_at=row["created_at"],
		members=members,
	)


def _row_to_chat(row: asyncpg.Record) -> models.GroupChat:
	return models.GroupChat(
		id=str(row["id"]),
		queue_id=str(row["queue_id"]),
		title=row["title"],
		description=row["description"],
		intention=row["intention"],
		creator_id=str(row["creator_id"]),
		created_at=row["created_at"],
		members=[str(m) for m in row["members"]],
	)


def _row_to_message(row: asyncpg.Record) -> models.GroupChatMessage:
	return models.GroupChatMessage(
		id=str(row["id"]),
		chat_id=str(row["chat_id"]),
		seq=int(row["seq"]),
		user_id=str(row["user_id"]) if row["user_id"] is not None else None,
		message=row["message"],
		kind=row["kind"],
		created_at=row["created_at"],
	)


def reset_memory_state() -> None:
	"""Test helper to clear in-memory store state."""
	_MEMORY.reset()
