"""Domain models for 1:1 direct chats."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple


@dataclass(slots=True)
class PairKey:
	"""Canonical representation of a 1:1 chat pair."""

	user1_id: str
	user2_id: str

	@classmethod
	def from_participants(cls, user_one: str, user_two: str) -> "PairKey":
		ordered = tuple(sorted((str(user_one), str(user_two))))
		return cls(user1_id=ordered[0], user2_id=ordered[1])

	def as_tuple(self) -> Tuple[str, str]:
		return (self.user1_id, self.user2_id)


@dataclass(slots=True)
class DirectChat:
	id: str
	user1_id: str
	user2_id: str
	created_at: datetime
	last_message_at: Optional[datetime] = None

	def is_participant(self, user_id: str) -> bool:
		return user_id in (self.user1_id, self.user2_id)

	def other_user(self, user_id: str) -> str:
		return self.user2_id if user_id == self.user1_id else self.user1_id

	def snapshot(self) -> "DirectChat":
		return replace(self)

	def to_summary(self, viewer_id: str) -> dict:
		return {
			"id": self.id,
			"user1_id": self.user1_id,
			"user2_id": self.user2_id,
			"other_user_id": self.other_user(viewer_id),
			"created_at": self.created_at,
			"last_message_at": self.last_message_at,
		}


@dataclass(slots=True)
class DirectMessage:
	id: str
	chat_id: str
	sender_id: str
	message: str
	created_at: datetime

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"chat_id": self.chat_id,
			"sender_id": self.sender_id,
			"message": self.message,
			"created_at": self.created_at,
		}
