"""Unit tests for the Gemini chat-completion client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

from chefgpt.clients.gemini import (
    GeminiChatModel,
    first_candidate_text,
    map_genai_error,
    to_gemini_contents,
)
from chefgpt.models.models import ModelMessage, ModelRequest, Role
from chefgpt.utils.errors import ConfigError, MalformedResponse, UpstreamError


def model_request(*pairs):
    return ModelRequest(messages=[ModelMessage(role=role, text=text) for role, text in pairs])


def fake_client(response=None, error=None):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=error)
    return client


class TestFirstCandidateText:
    """Test reply extraction from SDK objects and REST JSON."""

    def test_rest_json(self):
        response = {"candidates": [{"content": {"parts": [{"text": "Voilà!"}]}}]}

        assert first_candidate_text(response) == "Voilà!"

    def test_sdk_object(self):
        part = SimpleNamespace(text="Hello")
        response = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])

        assert first_candidate_text(response) == "Hello"

    @pytest.mark.parametrize(
        "response",
        [
            {},
            {"candidates": []},
            {"candidates": [{}]},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{"content": {"parts": [{"text": ""}]}}]},
            SimpleNamespace(candidates=None),
        ],
    )
    def test_missing_path(self, response):
        with pytest.raises(MalformedResponse):
            first_candidate_text(response)


class TestMapGenaiError:
    def test_api_error_keeps_status(self):
        error = genai_errors.ClientError(429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}})

        upstream = map_genai_error(error, "gemini")

        assert upstream.status == 429
        assert upstream.is_rate_limited

    @pytest.mark.parametrize("error", [httpx.ConnectTimeout("slow"), asyncio.TimeoutError()])
    def test_transport_errors_have_no_status(self, error):
        upstream = map_genai_error(error, "gemini")

        assert upstream.status is None

    def test_other_errors_are_not_mapped(self):
        assert map_genai_error(ValueError("bug"), "gemini") is None


class TestToGeminiContents:
    """Test ModelRequest -> Gemini contents translation."""

    def test_roles_and_system_instruction(self):
        request = model_request(
            (Role.SYSTEM, "persona"),
            (Role.USER, "hi"),
            (Role.ASSISTANT, "hello"),
            (Role.SYSTEM, "metric units"),
            (Role.USER, "recipe?"),
        )

        system_instruction, contents = to_gemini_contents(request)

        assert system_instruction == "persona"
        assert [c.role for c in contents] == ["user", "model", "user", "user"]
        assert contents[2].parts[0].text == "System note: metric units"
        assert contents[-1].parts[0].text == "recipe?"

    def test_empty_turns_skipped(self):
        request = model_request((Role.SYSTEM, "persona"), (Role.ASSISTANT, ""), (Role.USER, "hi"))

        _, contents = to_gemini_contents(request)

        assert len(contents) == 1


class TestGeminiChatModel:
    """Test GeminiChatModel.generate."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        model = GeminiChatModel(api_key="", model="gemini-2.5-flash")

        with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
            await model.generate(model_request((Role.SYSTEM, "p"), (Role.USER, "hi")))

    @pytest.mark.asyncio
    async def test_generate_sends_config(self):
        response = {"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}
        client = fake_client(response)
        model = GeminiChatModel(api_key="k", model="gemini-test", temperature=0.3, max_output_tokens=512, client=client)

        result = await model.generate(model_request((Role.SYSTEM, "persona"), (Role.USER, "hi")))

        assert result is response
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["config"].system_instruction == "persona"
        assert kwargs["config"].temperature == 0.3
        assert kwargs["config"].max_output_tokens == 512
        assert len(kwargs["contents"]) == 1

    @pytest.mark.asyncio
    async def test_server_error_maps_to_upstream_error(self):
        error = genai_errors.ServerError(500, {"error": {"code": 500, "message": "internal", "status": "INTERNAL"}})
        model = GeminiChatModel(api_key="k", model="m", client=fake_client(error=error))

        with pytest.raises(UpstreamError) as exc_info:
            await model.generate(model_request((Role.USER, "hi")))

        assert exc_info.value.status == 500
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_programming_errors_propagate_unchanged(self):
        model = GeminiChatModel(api_key="k", model="m", client=fake_client(error=TypeError("bad arg")))

        with pytest.raises(TypeError):
            await model.generate(model_request((Role.USER, "hi")))
