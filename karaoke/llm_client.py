"""OpenAI-compatible chat completion client.

A client is built per request from explicit settings; nothing here holds a
process-wide connection or credential.
"""

import json
from typing import Any

import httpx

from karaoke.config import Settings
from karaoke.exceptions import ConfigurationError, GenerationError
from karaoke.logging_config import get_logger

logger = get_logger(__name__)


class ChatCompletionClient:
    """Thin async wrapper around ``POST {base_url}/chat/completions``."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("LLM API key is not configured")
        self.model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ChatCompletionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        """
        Send a single user message and return the reply parsed as a JSON object.

        Raises:
            GenerationError: HTTP or network failure, empty reply, or a reply
                that is not a JSON object.
        """
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
        }
        try:
            r = await self._client.post("/chat/completions", json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "llm_http_error",
                status_code=e.response.status_code,
                model=self.model,
            )
            raise GenerationError(f"LLM request failed with status {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.warning("llm_network_error", error=str(e), model=self.model)
            raise GenerationError("LLM request failed") from e

        try:
            body = r.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError("Unexpected LLM response shape") from e

        if not content:
            raise GenerationError("Empty response from LLM")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise GenerationError("LLM response is not valid JSON") from e
        if not isinstance(data, dict):
            raise GenerationError("LLM response is not a JSON object")

        usage = body.get("usage") or {}
        logger.info(
            "llm_completion",
            model=self.model,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
        return data


def build_chat_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatCompletionClient:
    """Build a client from settings. Raises ConfigurationError without an API key."""
    if not settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY is not configured")
    return ChatCompletionClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout=settings.llm_timeout_seconds,
        transport=transport,
    )
