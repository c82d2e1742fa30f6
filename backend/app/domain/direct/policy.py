"""Policy helpers and error types for direct chats."""

from __future__ import annotations

from app.domain.common.errors import ForbiddenError, NotFoundError, ValidationError
from app.domain.direct import models

MESSAGE_MAX_LENGTH = 2000


class DirectChatNotFound(NotFoundError):
	code = "chat_not_found"
	default_message = "Chat not found"


class NotParticipant(ForbiddenError):
	code = "not_member"
	default_message = "You are not part of this conversation"


def ensure_distinct(user_id: str, recipient_id: str) -> str:
	recipient = (recipient_id or "").strip()
	if not recipient:
		raise ValidationError("Recipient is required")
	if recipient == user_id:
		raise ValidationError("You cannot start a chat with yourself")
	return recipient


def ensure_participant(chat: models.DirectChat, user_id: str) -> None:
	if not chat.is_participant(user_id):
		raise NotParticipant()


def validate_message(message: str) -> str:
	text = (message or "").strip()
	if not text:
		raise ValidationError("Message cannot be empty")
	if len(text) > MESSAGE_MAX_LENGTH:
		raise ValidationError(f"Message must be at most {MESSAGE_MAX_LENGTH} characters")
	return text
