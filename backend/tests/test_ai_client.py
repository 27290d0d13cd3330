"""
Tests for the chat model client and model output parsing
"""

import pytest
import httpx
import openai
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from services.ai_client import ChatModelClient
from services.error_types import ConfigurationError, ModelCallError, UnparseableModelOutputError
from services.plan_config import ModelConfig
from services.strict_json_parser import parse_model_json

MODEL = ModelConfig(name="gpt-4o-mini", max_tokens=500, temperature=0.2, timeout_seconds=15)
REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=42)
    )


def mock_openai(create):
    client = MagicMock()
    client.chat.completions.create = create
    return client


class TestParseModelJson:
    """Strict parse first, then a single fenced block"""

    def test_plain_json(self):
        assert parse_model_json('{"rooms": []}') == {"rooms": []}

    def test_fenced_json(self):
        content = 'Here you go:\n```json\n{"rooms": [{"name": "Kitchen"}]}\n```\nThanks'
        assert parse_model_json(content) == {"rooms": [{"name": "Kitchen"}]}

    def test_fenced_without_language(self):
        assert parse_model_json('```\n[1, 2]\n```') == [1, 2]

    @pytest.mark.parametrize("content", ["", "   ", "no json here", "```json\n{broken\n```"])
    def test_unparseable(self, content):
        with pytest.raises(UnparseableModelOutputError):
            parse_model_json(content)


class TestChatModelClient:
    """Provider errors surface as ModelCallError"""

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError):
            ChatModelClient(api_key="   ")

    @pytest.mark.asyncio
    async def test_complete_passes_model_parameters(self):
        create = AsyncMock(return_value=completion('{"pages": []}'))
        client = ChatModelClient(client=mock_openai(create))

        content = await client.complete(MODEL, "system", "user text")

        assert content == '{"pages": []}'
        kwargs = create.call_args.kwargs
        assert kwargs['model'] == "gpt-4o-mini"
        assert kwargs['max_tokens'] == 500
        assert kwargs['temperature'] == 0.2
        assert kwargs['timeout'] == 15
        assert kwargs['response_format'] == {"type": "json_object"}
        assert kwargs['messages'][0] == {"role": "system", "content": "system"}
        assert kwargs['messages'][1] == {"role": "user", "content": "user text"}

    @pytest.mark.asyncio
    async def test_complete_json(self):
        client = ChatModelClient(client=mock_openai(AsyncMock(return_value=completion('{"rooms": [1]}'))))

        assert await client.complete_json(MODEL, "system", "user") == {"rooms": [1]}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        openai.APIConnectionError(request=REQUEST),
        openai.APITimeoutError(request=REQUEST),
        openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None),
        openai.AuthenticationError("bad key", response=httpx.Response(401, request=REQUEST), body=None),
    ])
    async def test_provider_errors_are_wrapped(self, error):
        client = ChatModelClient(client=mock_openai(AsyncMock(side_effect=error)))

        with pytest.raises(ModelCallError) as exc_info:
            await client.complete(MODEL, "system", "user")

        assert exc_info.value.details['model'] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        client = ChatModelClient(client=mock_openai(AsyncMock(return_value=completion(None))))

        with pytest.raises(ModelCallError):
            await client.complete(MODEL, "system", "user")

    @pytest.mark.asyncio
    async def test_no_choices(self):
        response = SimpleNamespace(choices=[], usage=None)
        client = ChatModelClient(client=mock_openai(AsyncMock(return_value=response)))

        with pytest.raises(ModelCallError):
            await client.complete(MODEL, "system", "user")
