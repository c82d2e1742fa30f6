"""Persistence for direct chats and their messages."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import asyncpg
import ulid

from app.domain.direct import models
from app.infra.postgres import get_pool

_LOG = logging.getLogger(__name__)


class _MemoryStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.chats: Dict[str, models.DirectChat] = {}
		self.by_pair: Dict[Tuple[str, str], str] = {}
		self.messages: Dict[str, List[models.DirectMessage]] = {}

	def reset(self) -> None:
		self._lock = asyncio.Lock()
		self.chats.clear()
		self.by_pair.clear()
		self.messages.clear()

	async def get_or_create(self, key: models.PairKey, now: datetime) -> Tuple[models.DirectChat, bool]:
		async with self._lock:
			chat_id = self.by_pair.get(key.as_tuple())
			if chat_id is not None:
				return self.chats[chat_id].snapshot(), False
			chat = models.DirectChat(
				id=str(ulid.new()),
				user1_id=key.user1_id,
				user2_id=key.user2_id,
				created_at=now,
			)
			self.chats[chat.id] = chat
			self.by_pair[key.as_tuple()] = chat.id
			self.messages[chat.id] = []
			return chat.snapshot(), True

	async def get_chat(self, chat_id: str) -> Optional[models.DirectChat]:
		async with self._lock:
			chat = self.chats.get(chat_id)
			return chat.snapshot() if chat else None

	async def list_for_user(self, user_id: str) -> List[models.DirectChat]:
		async with self._lock:
			chats = [chat.snapshot() for chat in self.chats.values() if chat.is_participant(user_id)]
		chats.sort(key=lambda c: (c.last_message_at or c.created_at, c.id), reverse=True)
		return chats

	async def append_message(self, chat_id: str, sender_id: str, message: str, now: datetime) -> models.DirectMessage:
		async with self._lock:
			entry = models.DirectMessage(
				id=str(ulid.new()),
				chat_id=chat_id,
				sender_id=sender_id,
				message=message,
				created_at=now,
			)
			self.messages.setdefault(chat_id, []).append(entry)
			self.chats[chat_id] = replace(self.chats[chat_id], last_message_at=now)
			return entry

	async def list_messages(self, chat_id: str, limit: int) -> List[models.DirectMessage]:
		async with self._lock:
			return list(self.messages.get(chat_id, []))[-limit:]


_MEMORY = _MemoryStore()


def _row_to_chat(row: asyncpg.Record) -> models.DirectChat:
	return models.DirectChat(
		id=str(row["id"]),
		user1_id=str(row["user1_id"]),
		user2_id=str(row["user2_id"]),
		created_at=row["created_at"],
		last_message_at=row["last_message_at"],
	)


def _row_to_message(row: asyncpg.Record) -> models.DirectMessage:
	return models.DirectMessage(
		id=str(row["id"]),
		chat_id=str(row["chat_id"]),
		sender_id=str(row["sender_id"]),
		message=row["message"],
		created_at=row["created_at"],
	)


class DirectChatRepository:
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
			_LOG.warning("direct_store.memory_fallback", exc_info=True)
			pool = None
		self._pool_instance = pool
		return pool

	async def get_or_create(self, key: models.PairKey) -> Tuple[models.DirectChat, bool]:
		"""Return the chat for the pair and whether this call created it."""
		now = datetime.now(timezone.utc)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.get_or_create(key, now)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO direct_chats (id, user1_id, user2_id, created_at)
				VALUES ($1,$2,$3,$4)
				ON CONFLICT (user1_id, user2_id) DO NOTHING
				RETURNING *
				""",
				str(ulid.new()),
				key.user1_id,
				key.user2_id,
				now,
			)
			if row is not None:
				return _row_to_chat(row), True
			row = await conn.fetchrow(
				"SELECT * FROM direct_chats WHERE user1_id=$1 AND user2_id=$2",
				key.user1_id,
				key.user2_id,
			)
			return _row_to_chat(row), False

	async def get_chat(self, chat_id: str) -> Optional[models.DirectChat]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.get_chat(chat_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT * FROM direct_chats WHERE id=$1", chat_id)
			return _row_to_chat(row) if row else None

	async def list_for_user(self, user_id: str) -> List[models.DirectChat]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.list_for_user(user_id)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM direct_chats
				WHERE user1_id=$1 OR user2_id=$1
				ORDER BY COALESCE(last_message_at, created_at) DESC, id DESC
				""",
				user_id,
			)
			return [_row_to_chat(row) for row in rows]

	async def append_message(self, chat_id: str, sender_id: str, message: str) -> models.DirectMessage:
		now = datetime.now(timezone.utc)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.append_message(chat_id, sender_id, message, now)
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					INSERT INTO direct_messages (id, chat_id, sender_id, message, created_at)
					VALUES ($1,$2,$3,$4,$5)
					RETURNING *
					""",
					str(ulid.new()),
					chat_id,
					sender_id,
					message,
					now,
				)
				await conn.execute("UPDATE direct_chats SET last_message_at=$2 WHERE id=$1", chat_id, now)
			return _row_to_message(row)

	async def list_messages(self, chat_id: str, *, limit: int) -> List[models.DirectMessage]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.list_messages(chat_id, limit)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM direct_messages WHERE chat_id=$1 ORDER BY created_at DESC, id DESC LIMIT $2",
				chat_id,
				limit,
			)
		return [_row_to_message(row) for row in reversed(rows)]


def reset_memory_state() -> None:
	"""Test helper to clear in-memory store state."""
	_MEMORY.reset()
