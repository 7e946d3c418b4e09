"""Exceptions raised by botflow."""

from typing import List, Optional, Tuple


class BotFlowError(Exception):
    """Base exception for botflow errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ApiError(BotFlowError):
    """Raised when the backend rejects a request or reports success: false."""


class AuthenticationError(ApiError):
    """Raised when the backend refuses the configured token."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        super().__init__(message, status_code=status_code)


class NotFoundError(ApiError):
    """Raised when a flow or node does not exist."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class TransportError(BotFlowError):
    """Raised when the backend cannot be reached."""


class LayoutError(BotFlowError):
    """Raised when the layout engine is unavailable or fails."""


class StaleFlowError(BotFlowError):
    """
    Raised when a flow changed on the server since it was loaded.

    Saving would overwrite someone else's changes; reload and merge, or save
    again with force.
    """

    def __init__(self, flow_id: Optional[str], expected: str, actual: str):
        super().__init__(
            f"Flow {flow_id} was modified since it was loaded; reload before saving"
        )
        self.flow_id = flow_id
        self.expected = expected
        self.actual = actual


class SyncError(BotFlowError):
    """
    Raised when saving a flow fails part way.

    Calls already applied have been rolled back; rollback_errors lists the
    ones that could not be undone, so the server may still hold part of the
    change when it is not empty.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        applied: Optional[List[Tuple[str, str]]] = None,
        rollback_errors: Optional[List[BaseException]] = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.applied = applied or []
        self.rollback_errors = rollback_errors or []

    @property
    def rolled_back(self) -> bool:
        return not self.rollback_errors
