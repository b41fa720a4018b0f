"""Wire layer - the retrying Gemini transport."""

from .transport import RetryingTransport, is_retryable

__all__ = ["RetryingTransport", "is_retryable"]
