"""Per-key asyncio locks used to serialize mutations of a single queue."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class KeyedLocks:
	"""Hands out one asyncio.Lock per key and forgets it once nobody holds or awaits it."""

	def __init__(self) -> None:
		self._locks: Dict[str, asyncio.Lock] = {}
		self._users: Dict[str, int] = {}

	@asynccontextmanager
	async def hold(self, key: str) -> AsyncIterator[None]:
		lock = self._locks.get(key)
		if lock is None:
			lock = asyncio.Lock()
			self._locks[key] = lock
		self._users[key] = self._users.get(key, 0) + 1
		try:
			async with lock:
				yield
		finally:
			remaining = self._users[key] - 1
			if remaining:
				self._users[key] = remaining
			else:
				self._users.pop(key, None)
				self._locks.pop(key, None)

	def __len__(self) -> int:
		return len(self._locks)
