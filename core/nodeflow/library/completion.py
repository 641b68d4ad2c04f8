"""Completion service boundary.

The execution core needs exactly one capability from a text-generation
backend: given a system instruction, a user message, a model tier and a token
budget, return generated text or fail. :class:`CompletionService` names that
contract; :class:`ChatModelCompletionService` fulfils it with LangChain chat
models.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any, Protocol

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from nodeflow.config import CompletionSettings
from nodeflow.domain.errors import CompletionError

# (model id, max tokens) -> chat model
ChatModelFactory = Callable[[str, int], BaseChatModel]


class CompletionService(Protocol):
    """Opaque text-generation backend."""

    async def complete(
        self,
        system: str | None,
        message: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return generated text.

        Raises:
            CompletionError: On any transport or service failure.
        """
        ...


def create_chat_model(settings: CompletionSettings, model_name: str, max_tokens: int) -> BaseChatModel:
    """Initialize a LangChain chat model for the configured provider.

    Retries are disabled: retry policy belongs to the caller.
    """
    api_key = settings.api_key.get_secret_value() if settings.api_key is not None else None

    kwargs: dict[str, Any] = {"model": model_name, "max_tokens": max_tokens, "max_retries": 0}
    if api_key:
        kwargs["api_key"] = api_key
    if settings.base_url:
        kwargs["base_url"] = settings.base_url
    if settings.temperature is not None:
        kwargs["temperature"] = settings.temperature

    if settings.provider == "anthropic":
        return ChatAnthropic(**kwargs)
    if settings.provider == "openai":
        return ChatOpenAI(**kwargs)

    raise ValueError(f"Unsupported provider: {settings.provider}")


def extract_text(message: BaseMessage) -> str:
    """Return the textual portion of a chat response.

    Providers answer either with a plain string or with a list of content
    blocks; only ``text`` blocks are kept, joined by newlines.
    """
    content = message.content
    if isinstance(content, str):
        return content

    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "\n".join(parts)


class ChatModelCompletionService:
    """Completion service backed by a LangChain chat model.

    Example:
        ```python
        service = ChatModelCompletionService(NodeflowSettings().resolve())
        text = await service.complete("You are terse.", "Say hi", model="haiku")
        ```
    """

    def __init__(self, settings: CompletionSettings, *, factory: ChatModelFactory | None = None) -> None:
        """Initialize the service.

        Args:
            settings: Resolved provider, credentials and tier map.
            factory: Optional chat model factory (tests pass fake models here).
        """
        self.settings = settings
        self._factory = factory or (lambda name, tokens: create_chat_model(settings, name, tokens))

    async def complete(
        self,
        system: str | None,
        message: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        model_name = self.settings.model_id(model)
        budget = max_tokens or self.settings.max_tokens

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=message))

        sys.stderr.write(f"[COMPLETION] {model_name} (max_tokens={budget}), {len(message)} chars\n")
        sys.stderr.flush()

        try:
            llm = self._factory(model_name, budget)
            response = await llm.ainvoke(messages)
        except Exception as e:
            error_msg = str(e).strip() or type(e).__name__
            sys.stderr.write(f"[COMPLETION] ERROR: {error_msg}\n")
            sys.stderr.flush()
            raise CompletionError(error_msg) from e

        return extract_text(response)
