"""Domain models for group chat queues and the chats they promote into."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional


INTENTIONS = ("prayer", "bible_study", "evangelizing", "fellowship", "worship")

MIN_PEOPLE_FLOOR = 2
MAX_PEOPLE_FLOOR = 4
PEOPLE_CEILING = 12

QueueStatus = str


@dataclass(slots=True)
class GroupChatQueue:
    """A pending group chat waiting for enough members."""

    id: str
    title: str
    description: Optional[str]
    intention: str
    min_people: int
    max_people: int
    creator_id: str
    created_at: datetime
    members: List[str] = field(default_factory=list)

    @property
    def current_count(self) -> int:
        return len(self.members)

    def is_full(self) -> bool:
        return self.current_count >= self.max_people

    def has_member(self, user_id: str) -> bool:
        return user_id in self.members

    def status(self) -> QueueStatus:
        return "full" if self.is_full() else "open"

    def snapshot(self) -> "GroupChatQueue":
        return replace(self, members=list(self.members))

    def to_summary(self, *, viewer_id: str | None = None, status: QueueStatus | None = None, chat_id: str | None = None) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "intention": self.intention,
            "min_people": self.min_people,
            "max_people": self.max_people,
            "creator_id": self.creator_id,
            "members": list(self.members),
            "current_count": self.current_count,
            "created_at": self.created_at,
            "status": status or self.status(),
            "is_member": bool(viewer_id and self.has_member(viewer_id)),
            "chat_id": chat_id,
        }


@dataclass(slots=True)
class GroupChat:
    """A persistent group chat created by promoting a queue."""

    id: str
    queue_id: str
    title: str
    description: Optional[str]
    intention: str
    creator_id: str
    created_at: datetime
    members: List[str] = field(default_factory=list)

    @property
    def member_count(self) -> int:
        return len(self.members)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.members

    def snapshot(self) -> "GroupChat":
        return replace(self, members=list(self.members))

    def to_summary(self, *, viewer_id: str | None = None) -> dict:
        return {
            "id": self.id,
            "queue_id": self.queue_id,
            "title": self.title,
            "description": self.description,
            "intention": self.intention,
            "creator_id": self.creator_id,
            "members": list(self.members),
            "member_count": self.member_count,
            "created_at": self.created_at,
            "is_member": bool(viewer_id and self.has_member(viewer_id)),
        }


@dataclass(slots=True)
class GroupChatMessage:
    id: str
    chat_id: str
    seq: int
    user_id: Optional[str]
    message: str
    kind: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chat_id": self.chat_id,
            "seq": self.seq,
            "user_id": self.user_id,
            "message": self.message,
            "type": self.kind,
            "created_at": self.created_at,
        }
