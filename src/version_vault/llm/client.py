"""
Completion service client.

The pipeline depends only on the CompletionService protocol. The
concrete client talks to any OpenAI-compatible chat completions API
over httpx and asks for JSON-object output.
"""

import os
from typing import Protocol, runtime_checkable

import httpx

from version_vault.config.settings import LLMSettings
from version_vault.core.exceptions import (
    CompletionAuthenticationError,
    CompletionConnectionError,
    CompletionError,
    CompletionParseError,
    CompletionRateLimitError,
)
from version_vault.utils.logging import get_logger
from version_vault.utils.metrics import time_completion_call

logger = get_logger(__name__)


@runtime_checkable
class CompletionService(Protocol):
    """Anything that turns a system and user prompt into response text."""

    async def complete(self, system: str, user: str) -> str:
        ...


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    try:
        return float(value) if value else None
    except ValueError:
        return None


class OpenAICompatibleClient:
    """
    Chat completions client.

    Example:
        >>> client = OpenAICompatibleClient.from_settings(settings.llm)
        >>> text = await client.complete("Return JSON.", "Extract versions from ...")
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o",
        temperature: float = 0.1,
        max_tokens: int = 4096,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: LLMSettings,
        client: httpx.AsyncClient | None = None,
    ) -> "OpenAICompatibleClient":
        """
        Build a client, reading the API key from the configured env var.

        Raises:
            CompletionAuthenticationError: If the env var is unset
        """
        api_key = os.environ.get(settings.api_key_env_var)
        if not api_key:
            raise CompletionAuthenticationError(
                f"{settings.api_key_env_var} not configured",
                details={"env_var": settings.api_key_env_var},
            )
        return cls(
            api_key=api_key,
            base_url=settings.base_url,
            model=settings.model_name,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout_seconds=settings.timeout_seconds,
            client=client,
        )

    async def complete(self, system: str, user: str) -> str:
        """
        Send one chat completion request.

        Returns:
            The assistant message content

        Raises:
            CompletionAuthenticationError: On 401/403
            CompletionRateLimitError: On 429
            CompletionConnectionError: On transport failure, timeout or 5xx
            CompletionParseError: If the response envelope is malformed
            CompletionError: On any other error status
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/chat/completions"

        client = self._client or httpx.AsyncClient()
        try:
            with time_completion_call():
                response = await client.post(
                    url, json=payload, headers=headers, timeout=self.timeout_seconds)
        except httpx.TimeoutException as e:
            raise CompletionConnectionError(
                f"Completion request timed out after {self.timeout_seconds}s") from e
        except httpx.HTTPError as e:
            raise CompletionConnectionError(f"Cannot reach completion service: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        status = response.status_code
        if status in (401, 403):
            raise CompletionAuthenticationError(
                f"Completion service rejected credentials (HTTP {status})")
        if status == 429:
            raise CompletionRateLimitError(
                "Completion service rate limit reached",
                retry_after=_retry_after(response),
            )
        if status >= 500:
            raise CompletionConnectionError(
                f"Completion service error (HTTP {status})",
                details={"body": response.text[:200]},
            )
        if status >= 400:
            raise CompletionError(
                f"Completion request failed (HTTP {status})",
                details={"body": response.text[:200]},
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionParseError(
                f"Unexpected completion response structure: {e}", raw=response.text) from e
        if not isinstance(content, str) or not content.strip():
            raise CompletionParseError("Completion response was empty", raw=response.text)

        logger.debug(f"Completion returned {len(content)} chars from {self.model}")
        return content
