"""Quorum evaluation for group chat queues."""

from __future__ import annotations

from app.domain.queues import models


def should_promote(queue: models.GroupChatQueue) -> bool:
	"""A queue promotes once its member count reaches the minimum it was created with."""
	return queue.current_count >= queue.min_people
