"""Domain-level exceptions shared by the queue and chat services."""

from __future__ import annotations


class DomainError(RuntimeError):
	"""Base class for errors that map onto an HTTP status at the API boundary."""

	code: str = "error"
	status_code: int = 400
	default_message: str = "Something went wrong, please try again"

	def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
		super().__init__(message or self.default_message)
		self.message = message or self.default_message
		if code:
			self.code = code

	def as_detail(self) -> dict:
		return {"code": self.code, "message": self.message}


class ValidationError(DomainError):
	code = "validation_error"
	status_code = 400
	default_message = "Invalid request"


class NotFoundError(DomainError):
	code = "not_found"
	status_code = 404
	default_message = "Not found"


class ConflictError(DomainError):
	code = "conflict"
	status_code = 409
	default_message = "Conflict"


class ForbiddenError(DomainError):
	code = "forbidden"
	status_code = 403
	default_message = "You do not have permission to do that"


class RateLimitedError(DomainError):
	code = "rate_limited"
	status_code = 429
	default_message = "Too many requests, please slow down"
