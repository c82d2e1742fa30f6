"""Direct chat domain exports."""

from .service import DirectChatService

__all__ = ["DirectChatService"]
