"""Streaming relay to an OpenAI-compatible chat-completion API (OpenRouter by default).

Opens one streamed upstream call per review turn and hands the raw body back
chunk by chunk. Nothing is parsed, buffered or retried here: a non-2xx status
fails the request up front, a read failure mid-stream ends the relay.
"""

import os
from collections.abc import AsyncIterator

import httpx
import structlog

from backend.core.errors import ServiceUnavailableError, StreamError, UpstreamError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://openrouter.ai/api/v1/chat/completions"
UPSTREAM_FAILURE_MESSAGE = "Failed to get AI response"

# Upstream error bodies are logged, truncated to this many characters
_MAX_LOGGED_BODY = 2000


class LLMRelay:
    """Wraps a shared httpx.AsyncClient with the provider's auth and model settings."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self.api_key = os.environ.get("OPENROUTER_API_KEY", "")
        self.api_url = os.environ.get("LLM_API_URL", DEFAULT_API_URL)
        self.model_name = os.environ.get("LLM_MODEL", "openai/gpt-4o")

        self.temperature = float(os.environ.get("LLM_TEMPERATURE", "0.7"))
        self.max_tokens = int(os.environ.get("LLM_MAX_TOKENS", "2000"))

        # Unset means no timeout: a hung upstream hangs the relay.
        timeout = os.environ.get("LLM_TIMEOUT")
        self.timeout = float(timeout) if timeout else None

        self.referer = os.environ.get("APP_URL", "http://localhost:8501")
        self.title = os.environ.get("APP_TITLE", "DiffDesk - AI Code Reviewer")

        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    def is_healthy(self) -> bool:
        """Check that the upstream API key is configured.

        Returns:
            True if OPENROUTER_API_KEY is set.
        """
        return bool(self.api_key)

    def build_payload(self, messages: list[dict[str, str]]) -> dict:
        """Request body for a streamed chat completion."""
        return {
            "model": self.model_name,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": True,
        }

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
            "Content-Type": "application/json",
        }

    async def open_stream(self, messages: list[dict[str, str]]) -> httpx.Response:
        """Send the completion request and return the still-open streamed response.

        Args:
            messages: Assembled system/history/user message array.

        Returns:
            httpx.Response with an unread body. The caller must drain it via
            iter_body(), which also closes it.

        Raises:
            ServiceUnavailableError: If no API key is configured.
            UpstreamError: If the provider is unreachable or answers non-2xx.
        """
        if not self.api_key:
            logger.error("llm.not_configured", hint="Set OPENROUTER_API_KEY in .env")
            raise ServiceUnavailableError("AI service is not configured")

        logger.debug("llm.invoke", model=self.model_name, messages=len(messages))

        request = self._client.build_request(
            "POST",
            self.api_url,
            headers=self._headers(),
            json=self.build_payload(messages),
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error("llm.request_failed", error=str(e))
            raise UpstreamError(UPSTREAM_FAILURE_MESSAGE) from e

        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError as e:
                body = f"<unreadable: {e}>"
            finally:
                await response.aclose()
            logger.error("llm.upstream_error", status=response.status_code,
                         body=body[:_MAX_LOGGED_BODY])
            raise UpstreamError(UPSTREAM_FAILURE_MESSAGE)

        logger.info("llm.stream_opened", status=response.status_code)
        return response

    async def iter_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield the upstream body chunks unchanged, closing the response at the end.

        Raises:
            StreamError: If reading the upstream body fails mid-stream.
        """
        relayed = 0
        try:
            async for chunk in response.aiter_bytes():
                relayed += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            logger.error("llm.stream_failed", error=str(e), relayed_bytes=relayed)
            raise StreamError(f"Upstream stream failed after {relayed} bytes") from e
        finally:
            await response.aclose()

        logger.info("llm.stream_closed", relayed_bytes=relayed)

    async def aclose(self) -> None:
        await self._client.aclose()
