"""Tests for the chat completion client, using httpx.MockTransport."""

import json

import httpx
import pytest

from karaoke.config import Settings
from karaoke.exceptions import ConfigurationError, GenerationError
from karaoke.llm_client import ChatCompletionClient, build_chat_client


def _completion(content: str | None) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 34},
    }


def _client(handler) -> ChatCompletionClient:
    return ChatCompletionClient(
        api_key="sk-test",
        base_url="https://llm.test/v1/",
        model="test-model",
        transport=httpx.MockTransport(handler),
    )


class TestCompleteJson:
    @pytest.mark.asyncio
    async def test_sends_json_mode_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion('{"ok": true}'))

        async with _client(handler) as client:
            data = await client.complete_json("sing")

        assert data == {"ok": True}
        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "test-model"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert seen["body"]["messages"] == [{"role": "user", "content": "sing"}]

    @pytest.mark.asyncio
    async def test_http_error(self):
        async with _client(lambda r: httpx.Response(500, json={"error": "boom"})) as client:
            with pytest.raises(GenerationError, match="status 500"):
                await client.complete_json("sing")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with _client(handler) as client:
            with pytest.raises(GenerationError):
                await client.complete_json("sing")

    @pytest.mark.asyncio
    async def test_empty_content(self):
        async with _client(lambda r: httpx.Response(200, json=_completion(""))) as client:
            with pytest.raises(GenerationError, match="Empty"):
                await client.complete_json("sing")

    @pytest.mark.asyncio
    async def test_non_json_content(self):
        async with _client(lambda r: httpx.Response(200, json=_completion("la la la"))) as client:
            with pytest.raises(GenerationError, match="not valid JSON"):
                await client.complete_json("sing")

    @pytest.mark.asyncio
    async def test_json_array_rejected(self):
        async with _client(lambda r: httpx.Response(200, json=_completion("[1, 2]"))) as client:
            with pytest.raises(GenerationError, match="not a JSON object"):
                await client.complete_json("sing")

    @pytest.mark.asyncio
    async def test_missing_usage_block(self):
        payload = _completion('{"ok": true}')
        del payload["usage"]

        async with _client(lambda r: httpx.Response(200, json=payload)) as client:
            data = await client.complete_json("sing")

        assert data == {"ok": True}

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async with _client(lambda r: httpx.Response(200, text="<html>gateway</html>")) as client:
            with pytest.raises(GenerationError, match="Unexpected LLM response shape"):
                await client.complete_json("sing")


class TestBuildChatClient:
    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            build_chat_client(Settings(openai_api_key=""))

    @pytest.mark.asyncio
    async def test_uses_settings(self):
        client = build_chat_client(Settings(openai_api_key="sk-live", openai_model="gpt-test"))
        try:
            assert client.model == "gpt-test"
        finally:
            await client.aclose()
