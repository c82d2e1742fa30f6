"""Group chat queue domain exports."""

from .chat_service import GroupChatService
from .service import QueueService

__all__ = ["QueueService", "GroupChatService"]
