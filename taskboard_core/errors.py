"""
Taskboard Error Taxonomy
========================

Exceptions raised by the data access layer and translated to HTTP responses
by the API server.

- ValidationError: bad or missing client input (400)
- NotFound: no row matches both id and owner (404)
- ConfigurationError: the task table has no recognized owner column (500)
- TransientStoreError: the underlying store call failed (500)

Author: jetgause
Created: 2025-12-10
"""

from typing import Iterable, Optional


class TaskboardError(Exception):
    """Base class for every error surfaced to API callers"""

    status_code = 500
    public_message = "Internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(TaskboardError):
    """Client input rejected before touching the store"""

    status_code = 400
    public_message = "Invalid task data"


class NotFound(TaskboardError):
    """No row matches the id for this owner.

    Also raised when the row exists but belongs to someone else.
    """

    status_code = 404
    public_message = "Task not found or not owned by this user"


class ConfigurationError(TaskboardError):
    """The task table does not expose a recognized owner column"""

    status_code = 500
    public_message = "Unrecognized task table structure"

    def __init__(self, columns: Iterable[str] = (), message: Optional[str] = None):
        self.columns = list(columns)
        available = ", ".join(self.columns) if self.columns else "(none)"
        super().__init__(message, details=f"Available columns: {available}")


class TransientStoreError(TaskboardError):
    """The store call failed; the caller may try again later"""

    status_code = 500
    public_message = "Task store operation failed"

    @classmethod
    def from_exception(cls, operation: str, exc: Exception) -> "TransientStoreError":
        # Driver messages can be long and include SQL; keep the first line only
        summary = str(getattr(exc, "orig", None) or exc).splitlines()
        detail = summary[0][:200] if summary else type(exc).__name__
        return cls(f"Error while trying to {operation}", details=detail)
