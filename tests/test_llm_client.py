"""
Tests for the OpenAI-compatible completion client.
"""

import json

import httpx
import pytest

from version_vault.config import LLMSettings
from version_vault.core.exceptions import (
    CompletionAuthenticationError,
    CompletionConnectionError,
    CompletionError,
    CompletionParseError,
    CompletionRateLimitError,
)
from version_vault.llm import CompletionService, OpenAICompatibleClient
from version_vault.utils.metrics import Metrics

BASE_URL = "https://llm.example/v1"


def _envelope(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _client(handler) -> OpenAICompatibleClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAICompatibleClient(api_key="sk-test", base_url=BASE_URL + "/", model="test-model", client=http)


@pytest.fixture(autouse=True)
def reset_metrics():
    Metrics.reset()
    yield
    Metrics.reset()


class TestFromSettings:
    """Tests for building a client from settings."""

    def test_reads_key_from_env(self, monkeypatch):
        monkeypatch.setenv("VV_TEST_KEY", "sk-env")

        client = OpenAICompatibleClient.from_settings(
            LLMSettings(api_key_env_var="VV_TEST_KEY", model_name="m", base_url=BASE_URL))

        assert client.api_key == "sk-env"
        assert client.model == "m"
        assert client.base_url == BASE_URL

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("VV_TEST_KEY", raising=False)

        with pytest.raises(CompletionAuthenticationError) as exc_info:
            OpenAICompatibleClient.from_settings(LLMSettings(api_key_env_var="VV_TEST_KEY"))

        assert exc_info.value.details["env_var"] == "VV_TEST_KEY"

    def test_satisfies_protocol(self):
        assert isinstance(OpenAICompatibleClient(api_key="k"), CompletionService)


class TestComplete:
    """Tests for complete() over a mock transport."""

    @pytest.mark.asyncio
    async def test_request_and_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_envelope('{"versions": []}'))

        text = await _client(handler).complete("system prompt", "user prompt")

        assert text == '{"versions": []}'
        assert seen["url"] == f"{BASE_URL}/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        body = seen["body"]
        assert body["model"] == "test-model"
        assert body["messages"] == [
            {"role": "system", "content": "system prompt"},
            {"role": "user", "content": "user prompt"},
        ]
        assert body["response_format"] == {"type": "json_object"}
        assert Metrics.get().get_counter("completion_calls") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_credentials(self, status):
        client = _client(lambda request: httpx.Response(status, text="denied"))

        with pytest.raises(CompletionAuthenticationError):
            await client.complete("s", "u")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        client = _client(lambda request: httpx.Response(429, headers={"Retry-After": "12"}))

        with pytest.raises(CompletionRateLimitError) as exc_info:
            await client.complete("s", "u")

        assert exc_info.value.retry_after == 12.0

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = _client(lambda request: httpx.Response(502, text="bad gateway"))

        with pytest.raises(CompletionConnectionError) as exc_info:
            await client.complete("s", "u")

        assert exc_info.value.details["body"] == "bad gateway"

    @pytest.mark.asyncio
    async def test_client_error(self):
        client = _client(lambda request: httpx.Response(400, text="bad request"))

        with pytest.raises(CompletionError) as exc_info:
            await client.complete("s", "u")

        assert not isinstance(exc_info.value, (CompletionAuthenticationError, CompletionConnectionError))

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(CompletionConnectionError, match="timed out"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CompletionConnectionError, match="Cannot reach"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"choices": []}, {"error": "x"}, _envelope(""), _envelope(None)])
    async def test_malformed_envelope(self, payload):
        client = _client(lambda request: httpx.Response(200, json=payload))

        with pytest.raises(CompletionParseError):
            await client.complete("s", "u")
