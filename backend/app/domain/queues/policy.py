"""Policy helpers and error types for group chat queues."""

from __future__ import annotations

from datetime import datetime, timezone

from app.domain.common.errors import ConflictError, ForbiddenError, NotFoundError, RateLimitedError, ValidationError
from app.domain.queues import models
from app.infra import rate_limit
from app.obs import metrics as obs_metrics
from app.settings import settings

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
MESSAGE_MAX_LENGTH = 2000


class QueueValidationError(ValidationError):
	pass


class QueueNotFound(NotFoundError):
	code = "queue_not_found"
	default_message = "This queue is no longer available"


class QueueFull(ConflictError):
	code = "queue_full"
	default_message = "Queue Full"


class QueueForbidden(ForbiddenError):
	default_message = "Only the creator can cancel this queue"


class ChatNotFound(NotFoundError):
	code = "chat_not_found"
	default_message = "Chat not found"


class NotChatMember(ForbiddenError):
	code = "not_member"
	default_message = "You are not a member of this chat"


def validate_queue_request(title: str, description: str | None, intention: str, min_people: int, max_people: int) -> tuple[str, str | None]:
	"""Return the normalised (title, description) or raise QueueValidationError."""
	clean_title = (title or "").strip()
	if not clean_title:
		raise QueueValidationError("Title is required")
	if len(clean_title) > TITLE_MAX_LENGTH:
		raise QueueValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
	clean_description = (description or "").strip() or None
	if clean_description and len(clean_description) > DESCRIPTION_MAX_LENGTH:
		raise QueueValidationError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
	if intention not in models.INTENTIONS:
		raise QueueValidationError("Unknown intention")
	if not models.MIN_PEOPLE_FLOOR <= min_people <= models.PEOPLE_CEILING:
		raise QueueValidationError(
			f"Minimum people must be between {models.MIN_PEOPLE_FLOOR} and {models.PEOPLE_CEILING}"
		)
	if not models.MAX_PEOPLE_FLOOR <= max_people <= models.PEOPLE_CEILING:
		raise QueueValidationError(
			f"Maximum people must be between {models.MAX_PEOPLE_FLOOR} and {models.PEOPLE_CEILING}"
		)
	if min_people > max_people:
		raise QueueValidationError("Minimum people cannot exceed maximum people")
	return clean_title, clean_description


def validate_message(message: str, kind: str) -> str:
	text = (message or "").strip()
	if not text:
		raise QueueValidationError("Message cannot be empty")
	if len(text) > MESSAGE_MAX_LENGTH:
		raise QueueValidationError(f"Message must be at most {MESSAGE_MAX_LENGTH} characters")
	if kind == "system":
		raise QueueValidationError("System messages cannot be posted")
	return text


def ensure_can_join(queue: models.GroupChatQueue, user_id: str) -> None:
	if not queue.has_member(user_id) and queue.is_full():
		raise QueueFull()


def ensure_can_cancel(queue: models.GroupChatQueue, user_id: str) -> None:
	if queue.creator_id != user_id:
		raise QueueForbidden()


def ensure_chat_member(chat: models.GroupChat, user_id: str) -> None:
	if not chat.has_member(user_id):
		raise NotChatMember()


async def enforce_create_limit(user_id: str) -> None:
	bucket = datetime.now(timezone.utc).strftime("%Y%m%d")
	allowed = await rate_limit.allow(
		f"queue_create:{bucket}",
		user_id,
		limit=settings.queue_create_daily_limit,
		window_seconds=86_400,
	)
	if not allowed:
		obs_metrics.inc_rate_limited("queue_create")
		raise RateLimitedError("You have opened too many queues today")


async def enforce_send_limit(user_id: str) -> None:
	allowed = await rate_limit.allow("chat_send", user_id, limit=settings.chat_send_per_minute, window_seconds=60)
	if not allowed:
		obs_metrics.inc_rate_limited("chat_send")
		raise RateLimitedError("You are sending messages too quickly")
