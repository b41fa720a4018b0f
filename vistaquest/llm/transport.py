"""Retrying transport for Gemini ``generate_content`` calls.

A single "send request, get response" primitive shared by every service
adapter.  The transport knows nothing about what the payload means; it
only retries HTTP-level and network failures with pure exponential
back-off and gives up after ``max_retries`` attempts.

Delay schedule (defaults): attempt 1 fails -> wait 1 s, attempt 2 fails ->
wait 2 s, attempt 3 fails -> raise ``TransportError`` immediately.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Mapping

import httpx
from google.genai import errors as genai_errors

from ..errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds


def is_retryable(exc: BaseException) -> bool:
    """Check if an exception is a transport-level failure worth retrying.

    Non-2xx responses surface from the SDK as ``APIError`` (``ClientError``
    for 4xx, ``ServerError`` for 5xx).  Network failures surface as httpx
    transport errors or plain ``OSError`` (``ConnectionError``,
    ``TimeoutError``).  Everything else is a bug or a payload problem and
    must not be retried.
    """
    if isinstance(exc, genai_errors.APIError):
        return True
    return isinstance(exc, (httpx.TransportError, OSError))


class RetryingTransport:
    """Send a payload to a Gemini model with bounded exponential retry.

    Usage:
        transport = RetryingTransport(api_key=config.GOOGLE_API_KEY)
        response = await transport.send(
            "gemini-2.5-flash-image-preview",
            {"contents": contents, "config": generate_config},
        )
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: Any = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
    ):
        """Initialize the transport.

        Args:
            api_key: Gemini API key, used to lazily build a ``genai.Client``
            client: Pre-built client (anything exposing
                ``models.generate_content``); skips lazy construction
            max_retries: Total number of attempts before giving up
            base_delay: Delay in seconds before the second attempt;
                doubled for every further attempt
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self._api_key = api_key
        self._client = client
        self.max_retries = max_retries
        self.base_delay = base_delay

    def _ensure_client(self):
        """Lazy-init the Google GenAI client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self._api_key)

    def delay_for(self, attempt: int) -> float:
        """Delay after the failure of 0-indexed ``attempt``."""
        return self.base_delay * (2 ** attempt)

    def _call(self, endpoint: str, payload: Mapping[str, Any]) -> Any:
        return self._client.models.generate_content(
            model=endpoint,
            contents=payload["contents"],
            config=payload.get("config"),
        )

    async def send(self, endpoint: str, payload: Mapping[str, Any]) -> Any:
        """Send *payload* to the model named *endpoint*.

        Returns:
            The raw SDK response object (``GenerateContentResponse``).

        Raises:
            TransportError: after ``max_retries`` failed attempts; chained
                to the last underlying exception.
        """
        self._ensure_client()
        loop = asyncio.get_running_loop()
        last_exc: BaseException | None = None

        for attempt in range(self.max_retries):
            try:
                return await loop.run_in_executor(None, partial(self._call, endpoint, payload))
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                last_exc = exc
                if attempt == self.max_retries - 1:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s: attempt %d/%d failed (%s). Retrying in %.1f s",
                    endpoint, attempt + 1, self.max_retries,
                    str(exc)[:120], delay,
                )
                await asyncio.sleep(delay)

        raise TransportError(
            f"{endpoint}: request failed after {self.max_retries} attempts: {last_exc}",
            attempts=self.max_retries,
        ) from last_exc
