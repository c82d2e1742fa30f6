"""Pydantic schemas for the group chat queue API.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Intention = Literal["prayer", "bible_study", "evangelizing", "fellowship", "worship"]
QueueStatus = Literal["open", "full", "promoted", "cancelled"]
MessageKind = Literal["message", "prayer_request", "system"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueueCreateRequest(CamelModel):
    title: str
    description: Optional[str] = None
    intention: Intention
    min_people: int
    max_people: int


class QueueSummary(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    intention: Intention
    min_people: int
    max_people: int
    creator_id: str
    members: List[str]
    current_count: int
    created_at: datetime
    status: QueueStatus
    is_member: bool = False
    chat_id: Optional[str] = Field(default=None, description="Set once the queue has been promoted")


class GroupChatSummary(CamelModel):
    id: str
    queue_id: str
    title: str
    description: Optional[str] = None
    intention: Intention
    creator_id: str
    members: List[str]
    member_count: int
    created_at: datetime
    is_member: bool = False


class GroupChatMember(CamelModel):
    id: str
    is_creator: bool = False


class ChatMessageSendRequest(CamelModel):
    message: str = Field(..., max_length=2000)
    type: MessageKind = "message"


class ChatMessageDTO(CamelModel):
    id: str
    chat_id: str
    seq: int
    user_id: Optional[str] = None
    message: str
    type: MessageKind
    created_at: datetime
