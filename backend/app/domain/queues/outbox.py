"""Outbox helpers for queue and chat events.

Events are appended after the state change has committed, so a Redis outage
is logged rather than surfaced to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from redis.exceptions import RedisError

from app.infra.redis import redis_client

QUEUE_EVENT_STREAM = "x:queues.events"
CHAT_EVENT_STREAM = "x:chats.events"

_LOG = logging.getLogger(__name__)


async def _append(stream: str, fields: dict[str, Any]) -> None:
	try:
		await redis_client.xadd(stream, fields)
	except (RedisError, OSError):
		_LOG.warning("outbox.append_failed", extra={"stream": stream, "event": fields.get("event")}, exc_info=True)


async def append_queue_event(
	event: str,
	queue_id: str,
	*,
	user_id: str | None = None,
	meta: Mapping[str, Any] | None = None,
) -> None:
	fields: dict[str, Any] = {"event": event, "queue_id": queue_id}
	if user_id:
		fields["user_id"] = str(user_id)
	if meta:
		for key, value in meta.items():
			fields[f"meta_{key}"] = str(value)
	await _append(QUEUE_EVENT_STREAM, fields)


async def append_chat_event(
	event: str,
	chat_id: str,
	*,
	user_id: str | None = None,
	meta: Mapping[str, Any] | None = None,
) -> None:
	fields: dict[str, Any] = {"event": event, "chat_id": chat_id}
	if user_id:
		fields["user_id"] = str(user_id)
	if meta:
		for key, value in meta.items():
			fields[f"meta_{key}"] = str(value)
	await _append(CHAT_EVENT_STREAM, fields)
