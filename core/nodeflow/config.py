"""Configuration for the completion service.

Settings are read once, from ``NODEFLOW_*`` environment variables or a ``.env``
file, and resolved into an explicit :class:`CompletionSettings` value that is
passed into the coordinator. Nothing in the execution core reads the
environment after that point.

Modes:
- ``env``: the provider's own variable (``ANTHROPIC_API_KEY`` or
  ``OPENAI_API_KEY``) holds the key;
- ``direct``: ``NODEFLOW_API_KEY`` holds the key;
- ``proxy``: requests go to ``NODEFLOW_PROXY_URL``; the key is optional.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CredentialMode = Literal["env", "direct", "proxy"]
Provider = Literal["anthropic", "openai"]

DEFAULT_MODEL_TIERS: dict[str, str] = {
    "sonnet": "claude-sonnet-4-20250514",
    "opus": "claude-opus-4-20250514",
    "haiku": "claude-3-5-haiku-20241022",
}

PROVIDER_KEY_VARIABLES: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


class CompletionSettings(BaseModel):
    """Resolved completion-service configuration for one runner."""

    model_config = ConfigDict(frozen=True)

    mode: CredentialMode = Field(default="env")
    provider: Provider = Field(default="anthropic")
    api_key: SecretStr | None = Field(default=None)
    base_url: str | None = Field(default=None, description="Proxy or gateway URL")
    model_tiers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MODEL_TIERS))
    default_tier: str = Field(default="sonnet")
    max_tokens: int = Field(default=4096, gt=0)
    timeout: float | None = Field(default=None, gt=0, description="Seconds allowed per completion call")
    temperature: float | None = Field(default=None, ge=0)

    def model_id(self, tier: str | None = None) -> str:
        """Map a tier name to a concrete model id.

        Unknown names are taken to be concrete model ids already.
        """
        name = tier or self.default_tier
        return self.model_tiers.get(name, name)


class NodeflowSettings(BaseSettings):
    """Environment-backed settings (``NODEFLOW_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="NODEFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    mode: CredentialMode = Field(default="env")
    provider: Provider = Field(default="anthropic")
    api_key: SecretStr | None = Field(default=None)
    proxy_url: str | None = Field(default=None)
    default_tier: str = Field(default="sonnet")
    max_tokens: int = Field(default=4096, gt=0)
    timeout: float | None = Field(default=None, gt=0)

    def resolve(self, environ: Mapping[str, str] | None = None) -> CompletionSettings:
        """Resolve credentials and mode into a :class:`CompletionSettings`.

        Args:
            environ: Environment used by ``env`` mode (defaults to ``os.environ``).

        Raises:
            ValueError: If the selected mode is missing its required value.
        """
        environ = os.environ if environ is None else environ

        api_key = self.api_key
        base_url: str | None = None

        if self.mode == "env":
            raw = environ.get(PROVIDER_KEY_VARIABLES[self.provider])
            api_key = SecretStr(raw) if raw else None
        elif self.mode == "direct":
            if api_key is None or not api_key.get_secret_value():
                raise ValueError("NODEFLOW_API_KEY is required when NODEFLOW_MODE=direct")
        elif self.mode == "proxy":
            if not self.proxy_url:
                raise ValueError("NODEFLOW_PROXY_URL is required when NODEFLOW_MODE=proxy")
            base_url = self.proxy_url

        return CompletionSettings(
            mode=self.mode,
            provider=self.provider,
            api_key=api_key,
            base_url=base_url,
            default_tier=self.default_tier,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
        )
