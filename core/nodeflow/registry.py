"""Node strategy and built-in skill registries.

This module provides:
- A registry type mapping identifiers to implementations
- The global strategy registry (node kind -> strategy)
- The global skill registry (skill id -> built-in skill)

Design:
- Each node kind has exactly one strategy object exposing ``execute``
- Strategies register themselves when ``nodeflow.library`` is imported
- The dispatcher looks strategies up by kind instead of inspecting types

Example:
    # Replace the external-tool strategy with a real integration
    @register_strategy("external-tool")
    class HttpToolStrategy(NodeStrategy):
        async def execute(self, node, config, ctx):
            ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from nodeflow.library.base import NodeStrategy
    from nodeflow.library.skill import BuiltinSkill

T = TypeVar("T")


class Registry(Generic[T]):
    """Registry of implementations keyed by identifier.

    Example:
        registry: Registry[str] = Registry("greeting")
        registry.register("en", "hello")
        registry.resolve("en")  # "hello"
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._entries: dict[str, T] = {}

    def register(self, type_id: str, entry: T) -> None:
        """Register (or replace) the entry for ``type_id``."""
        self._entries[type_id] = entry

    def resolve(self, type_id: str) -> T:
        """Return the entry for ``type_id``.

        Raises:
            ValueError: If nothing is registered under that identifier.
        """
        entry = self._entries.get(type_id)
        if entry is None:
            raise ValueError(
                f"No {self.label} registered for: {type_id}\n"
                f"Available: {', '.join(sorted(self._entries.keys()))}"
            )
        return entry

    def has(self, type_id: str) -> bool:
        return type_id in self._entries

    def available(self) -> list[str]:
        return sorted(self._entries.keys())


# Global registry instances
_strategy_registry: Registry[NodeStrategy] = Registry("node strategy")
_skill_registry: Registry[BuiltinSkill] = Registry("built-in skill")

S = TypeVar("S", bound="type[NodeStrategy]")


def register_strategy(kind: str) -> Callable[[S], S]:
    """Class decorator registering an instance of the strategy for ``kind``.

    Example:
        @register_strategy("input")
        class InputStrategy(NodeStrategy):
            ...
    """

    def decorator(cls: S) -> S:
        _strategy_registry.register(kind, cls())
        return cls

    return decorator


def get_strategy(kind: str) -> NodeStrategy:
    """Resolve the strategy for a node kind.

    Raises:
        ValueError: If no strategy is registered for the kind.
    """
    return _strategy_registry.resolve(kind)


def has_strategy(kind: str) -> bool:
    return _strategy_registry.has(kind)


def register_skill(skill: BuiltinSkill, *aliases: str) -> BuiltinSkill:
    """Register a built-in skill under its id and any aliases."""
    for skill_id in (skill.skill_id, *aliases):
        _skill_registry.register(skill_id, skill)
    return skill


def get_skill(skill_id: str) -> BuiltinSkill:
    return _skill_registry.resolve(skill_id)


def has_skill(skill_id: str | None) -> bool:
    return skill_id is not None and _skill_registry.has(skill_id)


def get_strategy_registry() -> Registry[NodeStrategy]:
    return _strategy_registry


def get_skill_registry() -> Registry[BuiltinSkill]:
    return _skill_registry
