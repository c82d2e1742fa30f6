"""Pydantic schemas for the direct chat API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.domain.queues.schemas import CamelModel


class DirectChatCreateRequest(CamelModel):
    recipient_id: str = Field(..., min_length=1)


class DirectChatSummary(CamelModel):
    id: str
    user1_id: str
    user2_id: str
    other_user_id: str
    created_at: datetime
    last_message_at: Optional[datetime] = None


class DirectMessageSendRequest(CamelModel):
    message: str = Field(..., max_length=2000)


class DirectMessageDTO(CamelModel):
    id: str
    chat_id: str
    sender_id: str
    message: str
    created_at: datetime
