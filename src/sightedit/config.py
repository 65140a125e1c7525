"""Configuration management for SightEdit's AI streaming."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from sightedit.types import Provider

_logger = logging.getLogger(__name__)


class ModelSpec(BaseModel):
    name: str = ""  # human-readable label
    max_tokens: int = 8192  # max output tokens requested per call


def _gemini_models() -> dict[str, ModelSpec]:
    return {
        "gemini-2.0-flash-exp": ModelSpec(name="Gemini 2.0 Flash (experimental)"),
        "gemini-2.0-flash": ModelSpec(name="Gemini 2.0 Flash"),
        "gemini-2.5-pro": ModelSpec(name="Gemini 2.5 Pro"),
        "gemini-1.5-flash": ModelSpec(name="Gemini 1.5 Flash"),
        "gemini-1.5-pro": ModelSpec(name="Gemini 1.5 Pro"),
    }


def _claude_models() -> dict[str, ModelSpec]:
    return {
        "claude-3-5-sonnet-20241022": ModelSpec(name="Claude 3.5 Sonnet"),
        "claude-3-5-haiku-20241022": ModelSpec(name="Claude 3.5 Haiku"),
        "claude-3-opus-20240229": ModelSpec(name="Claude 3 Opus", max_tokens=4096),
        "claude-3-sonnet-20240229": ModelSpec(name="Claude 3 Sonnet", max_tokens=4096),
        "claude-3-haiku-20240307": ModelSpec(name="Claude 3 Haiku", max_tokens=4096),
    }


class ProviderConfig(BaseModel):
    api_key: str = ""
    api_key_env: str = ""  # environment variable consulted when api_key is empty
    base_url: str = ""
    default_model: str = ""
    models: dict[str, ModelSpec] = Field(default_factory=dict)

    def resolve_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env, "")
        return ""


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        Provider.GEMINI.value: ProviderConfig(
            api_key_env="GEMINI_API_KEY",
            base_url="https://generativelanguage.googleapis.com/v1beta",
            default_model="gemini-2.5-pro",
            models=_gemini_models(),
        ),
        Provider.CLAUDE.value: ProviderConfig(
            api_key_env="ANTHROPIC_API_KEY",
            base_url="https://api.anthropic.com/v1",
            default_model="claude-3-5-sonnet-20241022",
            models=_claude_models(),
        ),
    }


class StreamingConfig(BaseModel):
    max_attempts: int = 3
    initial_delay: float = 1.0  # seconds, doubled after each failed attempt
    flush_interval: float = 0.05  # seconds between UI flushes
    temperature: float = 0.7
    context_budget: int = 30000  # approximate tokens of history per request
    connect_timeout: float = 30
    read_timeout: float = 60


class EditorConfig(BaseModel):
    provider: Provider = Provider.GEMINI
    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)

    def provider_config(self, provider: Provider | str | None = None) -> ProviderConfig:
        key = Provider(provider or self.provider).value
        return self.providers.get(key) or _default_providers()[key]


CONFIG_FILENAME = "sightedit.yaml"


def _merge_providers(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay user provider settings on the built-in catalog.

    A user entry that omits ``models`` keeps the built-in model list, so a
    config file only needs to carry what it changes (usually the API key).
    """
    merged: dict[str, Any] = {
        name: cfg.model_dump() for name, cfg in _default_providers().items()
    }
    for name, praw in (raw or {}).items():
        base = merged.get(name, {})
        base.update({k: v for k, v in (praw or {}).items() if v is not None})
        merged[name] = base
    return merged


def load_config(
    config_path: str | Path | None = None,
) -> tuple[EditorConfig, Path | None]:
    """Load configuration from YAML file.

    Returns (config, resolved_path).  *resolved_path* is ``None`` when
    no file was found and built-in defaults are used.

    Search order (first match wins):
      1. Explicit ``--config`` path
      2. Current working directory: ``./sightedit.yaml``
      3. User config dir: ``~/.sightedit/sightedit.yaml``
    """
    if config_path is None:
        for d in (Path.cwd(), Path.home() / ".sightedit"):
            p = d / CONFIG_FILENAME
            if p.exists():
                config_path = p
                break

    resolved: Path | None = Path(config_path) if config_path else None
    if resolved and resolved.exists():
        _logger.info("Loading config from %s", resolved)
        with open(resolved) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        raw["providers"] = _merge_providers(raw.get("providers", {}))
        return EditorConfig.model_validate(raw), resolved.resolve()

    # Explicit path was given but file doesn't exist - report the error
    if config_path is not None:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    _logger.info("No config file found - using defaults")
    return EditorConfig(), None
