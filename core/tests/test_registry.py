"""Tests for the strategy and skill registries.

These tests verify:
- Registry registration and lookup
- Built-in strategies for every node kind
- Built-in skills and their aliases
- Custom strategy registration
- Error handling for unknown identifiers
"""

from __future__ import annotations

import pytest

from nodeflow.library import (
    AgentStrategy,
    ExternalToolStrategy,
    InputStrategy,
    OutputStrategy,
    SkillStrategy,
)
from nodeflow.library.base import NodeStrategy
from nodeflow.library.skill import IMAGE_PROMPT_SET, SLIDE_OUTLINE
from nodeflow.registry import (
    Registry,
    get_skill,
    get_skill_registry,
    get_strategy,
    get_strategy_registry,
    has_skill,
    has_strategy,
    register_strategy,
)


class TestRegistry:
    """Test the generic Registry class."""

    def test_register_and_resolve(self):
        registry: Registry[str] = Registry("greeting")
        registry.register("en", "hello")
        assert registry.resolve("en") == "hello"

    def test_register_replaces(self):
        registry: Registry[str] = Registry("greeting")
        registry.register("en", "hello")
        registry.register("en", "hi")
        assert registry.resolve("en") == "hi"

    def test_has(self):
        registry: Registry[int] = Registry("number")
        registry.register("one", 1)
        assert registry.has("one") is True
        assert registry.has("two") is False

    def test_resolve_unknown(self):
        registry: Registry[int] = Registry("number")
        registry.register("one", 1)
        registry.register("three", 3)

        with pytest.raises(ValueError) as excinfo:
            registry.resolve("two")

        message = str(excinfo.value)
        assert "No number registered for: two" in message
        assert "Available: one, three" in message

    def test_available_is_sorted(self):
        registry: Registry[int] = Registry("number")
        for name in ("b", "c", "a"):
            registry.register(name, 0)
        assert registry.available() == ["a", "b", "c"]


class TestStrategyRegistry:
    """Test the built-in node strategies."""

    @pytest.mark.parametrize(
        "kind,strategy_type",
        [
            ("input", InputStrategy),
            ("agent", AgentStrategy),
            ("skill", SkillStrategy),
            ("external-tool", ExternalToolStrategy),
            ("output", OutputStrategy),
        ],
    )
    def test_builtin_kinds(self, kind, strategy_type):
        assert has_strategy(kind)
        strategy = get_strategy(kind)
        assert isinstance(strategy, strategy_type)
        assert strategy.kind == kind

    def test_unknown_kind(self):
        assert has_strategy("teleporter") is False
        with pytest.raises(ValueError, match="No node strategy registered for: teleporter"):
            get_strategy("teleporter")

    def test_register_custom_strategy(self):
        @register_strategy("test-echo")
        class EchoStrategy(NodeStrategy):
            kind = "test-echo"

            async def execute(self, node, config, ctx):
                raise NotImplementedError

        assert isinstance(get_strategy("test-echo"), EchoStrategy)
        assert "test-echo" in get_strategy_registry().available()

    def test_repr(self):
        assert repr(get_strategy("agent")) == "AgentStrategy(kind='agent')"


class TestSkillRegistry:
    """Test the built-in skills."""

    def test_builtin_skills_and_aliases(self):
        assert get_skill("ppt-generator") is SLIDE_OUTLINE
        assert get_skill("pptx") is SLIDE_OUTLINE
        assert get_skill("image-gen-nanobanana") is IMAGE_PROMPT_SET
        assert get_skill("image-gen") is IMAGE_PROMPT_SET

    def test_has_skill(self):
        assert has_skill("pptx") is True
        assert has_skill("translator") is False
        assert has_skill(None) is False

    def test_prompt_includes_request(self):
        prompt = SLIDE_OUTLINE.build_prompt("Launch plan")
        assert "## Request\nLaunch plan" in prompt

    def test_available(self):
        assert get_skill_registry().available() == [
            "image-gen",
            "image-gen-nanobanana",
            "ppt-generator",
            "pptx",
        ]
