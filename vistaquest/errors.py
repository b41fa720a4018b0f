"""Failure taxonomy shared by the transport, adapters and orchestrator.

Every class carries an :class:`ErrorKind` tag so callers can branch on
``error.kind`` instead of ``isinstance`` chains.
"""

from .enums import ErrorKind


class SceneError(Exception):
    """Base class for classified orchestration failures."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": str(self.kind), "message": self.message}


class TransportError(SceneError):
    """Request failed at the HTTP/network level after all retries."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["attempts"] = self.attempts
        return data


class ContentBlockedError(SceneError):
    """The service refused to generate on safety grounds."""

    kind = ErrorKind.CONTENT_BLOCKED

    def __init__(self, message: str, categories: list[str] | None = None):
        super().__init__(message)
        self.categories = list(categories or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["categories"] = self.categories
        return data


class MalformedResponseError(SceneError):
    """The response did not match the required structural schema."""

    kind = ErrorKind.MALFORMED_RESPONSE


class EmptyResultError(SceneError):
    """The response carried no usable payload and no block indicator."""

    kind = ErrorKind.EMPTY_RESULT


class BusyError(SceneError):
    """A turn or refinement was submitted while another was in flight."""

    kind = ErrorKind.BUSY

    def __init__(self, message: str = "Another turn or refinement is already in progress."):
        super().__init__(message)
