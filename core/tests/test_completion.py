"""Tests for the LangChain-backed completion service."""

from __future__ import annotations

import pytest
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from nodeflow.config import CompletionSettings
from nodeflow.domain.errors import CompletionError
from nodeflow.library.completion import ChatModelCompletionService, create_chat_model, extract_text


class RecordingFactory:
    """Chat model factory returning a fake model and remembering its arguments."""

    def __init__(self, responses=("generated",)):
        self.responses = list(responses)
        self.requests: list[tuple[str, int]] = []

    def __call__(self, model_name: str, max_tokens: int):
        self.requests.append((model_name, max_tokens))
        return FakeListChatModel(responses=self.responses)


class TestExtractText:
    def test_plain_string(self):
        assert extract_text(AIMessage(content="hello")) == "hello"

    def test_text_blocks_only(self):
        message = AIMessage(
            content=[
                {"type": "text", "text": "first"},
                {"type": "tool_use", "id": "t1", "name": "search", "input": {}},
                {"type": "text", "text": "second"},
            ]
        )
        assert extract_text(message) == "first\nsecond"

    def test_no_text(self):
        assert extract_text(AIMessage(content=[])) == ""


class TestChatModelCompletionService:
    @pytest.mark.asyncio
    async def test_returns_model_text(self):
        factory = RecordingFactory()
        service = ChatModelCompletionService(CompletionSettings(), factory=factory)

        text = await service.complete("Be terse.", "Say hi")

        assert text == "generated"

    @pytest.mark.asyncio
    async def test_tier_mapping_and_budget(self):
        factory = RecordingFactory()
        service = ChatModelCompletionService(CompletionSettings(max_tokens=512), factory=factory)

        await service.complete(None, "a", model="opus")
        await service.complete(None, "b", model="haiku", max_tokens=64)
        await service.complete(None, "c")
        await service.complete(None, "d", model="gpt-4o-mini")

        assert factory.requests == [
            ("claude-opus-4-20250514", 512),
            ("claude-3-5-haiku-20241022", 64),
            ("claude-sonnet-4-20250514", 512),
            ("gpt-4o-mini", 512),
        ]

    @pytest.mark.asyncio
    async def test_model_failure_becomes_completion_error(self):
        def factory(model_name, max_tokens):
            raise RuntimeError("connection refused")

        service = ChatModelCompletionService(CompletionSettings(), factory=factory)

        with pytest.raises(CompletionError, match="connection refused"):
            await service.complete(None, "hi")

    @pytest.mark.asyncio
    async def test_empty_error_text_uses_type_name(self):
        def factory(model_name, max_tokens):
            raise TimeoutError()

        service = ChatModelCompletionService(CompletionSettings(), factory=factory)

        with pytest.raises(CompletionError, match="TimeoutError"):
            await service.complete(None, "hi")


class TestCreateChatModel:
    def test_anthropic(self):
        settings = CompletionSettings(provider="anthropic", api_key=SecretStr("sk-ant-test"))
        model = create_chat_model(settings, "claude-sonnet-4-20250514", 256)
        assert isinstance(model, ChatAnthropic)
        assert model.max_retries == 0

    def test_openai(self):
        settings = CompletionSettings(provider="openai", api_key=SecretStr("sk-test"))
        model = create_chat_model(settings, "gpt-4o-mini", 256)
        assert isinstance(model, ChatOpenAI)
        assert model.max_retries == 0

    def test_proxy_base_url(self):
        settings = CompletionSettings(
            mode="proxy",
            provider="openai",
            api_key=SecretStr("sk-test"),
            base_url="http://localhost:4000/v1",
        )
        model = create_chat_model(settings, "gpt-4o-mini", 256)
        assert model.openai_api_base == "http://localhost:4000/v1"
