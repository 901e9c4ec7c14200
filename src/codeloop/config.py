"""Configuration management for codeloop."""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import DEFAULT_CONTEXT_WINDOW, DEFAULT_MAX_TOKENS, LOCAL_PROVIDERS

TYPE_LONG_CONTEXT = "long-context"
TYPE_REASONING = "reasoning"


def get_global_config_path() -> Path:
    """Get path to global config: ~/.codeloop.json"""
    return Path.home() / ".codeloop.json"


def get_workspace_config_path(workspace: Optional[Path] = None) -> Path:
    """Get path to workspace config: workspace/.codeloop/.codeloop.json"""
    ws = workspace or Path.cwd()
    return ws / ".codeloop" / ".codeloop.json"


def load_json_config(path: Path) -> dict:
    """Load config from JSON file if it exists."""
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError):
            pass
    return {}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_number(key: str, value: Any, kind: type):
    try:
        return kind(value)
    except (TypeError, ValueError, OverflowError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")


@dataclass(frozen=True)
class ModelConfig:
    """One configured model. ``type`` is "long-context" (coding) or "reasoning" (planning)."""
    id: str
    type: str = TYPE_LONG_CONTEXT
    provider: str = "lm-studio"
    provider_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", TYPE_LONG_CONTEXT)),
            provider=str(data.get("provider", "lm-studio")),
            provider_url=data.get("provider_url") or data.get("providerUrl"),
        )

    @property
    def base_url(self) -> str:
        return self.provider_url or LOCAL_PROVIDERS.get(self.provider, LOCAL_PROVIDERS["lm-studio"])


@dataclass
class Config:
    """Configuration for an agent session."""

    provider: str = "lm-studio"
    api_url: str = ""
    api_key: str = ""
    model: str = ""
    max_tokens: int = DEFAULT_MAX_TOKENS
    context_window: int = DEFAULT_CONTEXT_WINDOW
    readonly: bool = False
    planning: bool = True
    connect_timeout: float = 30.0
    read_timeout: float = 300.0
    workspace_path: Path = field(default_factory=lambda: Path.cwd())
    models: List[ModelConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], workspace: Optional[Path] = None) -> "Config":
        models = data.get("models") or []
        if not isinstance(models, list):
            raise ConfigurationError("models must be a list")
        return cls(
            provider=data.get("provider", "lm-studio"),
            api_url=data.get("api_url", ""),
            api_key=data.get("api_key", ""),
            model=data.get("model", ""),
            max_tokens=_as_number("max_tokens", data.get("max_tokens", DEFAULT_MAX_TOKENS), int),
            context_window=_as_number("context_window", data.get("context_window", DEFAULT_CONTEXT_WINDOW), int),
            readonly=_as_bool(data.get("readonly", False)),
            planning=_as_bool(data.get("planning", True)),
            connect_timeout=_as_number("connect_timeout", data.get("connect_timeout", 30.0), float),
            read_timeout=_as_number("read_timeout", data.get("read_timeout", 300.0), float),
            workspace_path=workspace or Path.cwd(),
            models=[ModelConfig.from_dict(m) for m in models if isinstance(m, dict)],
        )

    @classmethod
    def from_json(cls, workspace: Optional[Path] = None) -> "Config":
        """Load configuration from JSON files.

        Priority (later overrides earlier):
        1. ~/.codeloop.json (global)
        2. workspace/.codeloop/.codeloop.json (workspace-specific)
        """
        config_data: Dict[str, Any] = {}
        config_data.update(load_json_config(get_global_config_path()))
        config_data.update(load_json_config(get_workspace_config_path(workspace)))
        return cls.from_dict(config_data, workspace)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, workspace: Optional[Path] = None) -> "Config":
        """Load JSON configuration, then apply CODELOOP_* environment overrides."""
        if env_path and env_path.exists():
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls.from_json(workspace)
        overrides = {
            "provider": os.getenv("CODELOOP_PROVIDER"),
            "api_url": os.getenv("CODELOOP_API_URL"),
            "api_key": os.getenv("CODELOOP_API_KEY"),
            "model": os.getenv("CODELOOP_MODEL"),
        }
        for key, value in overrides.items():
            if value:
                setattr(config, key, value)
        if os.getenv("CODELOOP_MAX_TOKENS"):
            config.max_tokens = _as_number("CODELOOP_MAX_TOKENS", os.environ["CODELOOP_MAX_TOKENS"], int)
        if os.getenv("CODELOOP_READONLY"):
            config.readonly = _as_bool(os.environ["CODELOOP_READONLY"])
        return config

    def default_model(self) -> Optional[ModelConfig]:
        """The long-context model, falling back to the first configured one."""
        for m in self.models:
            if m.type == TYPE_LONG_CONTEXT:
                return m
        return self.models[0] if self.models else None

    def reasoning_model(self) -> Optional[ModelConfig]:
        """The reasoning model, falling back to the default model."""
        for m in self.models:
            if m.type == TYPE_REASONING:
                return m
        return self.default_model()

    @property
    def is_configured(self) -> bool:
        return bool(self.models or self.model or self.api_url)

    def validate(self) -> bool:
        """Validate the configuration."""
        if self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be positive")
        if self.read_timeout <= 0 or self.connect_timeout <= 0:
            raise ConfigurationError("timeouts must be positive")
        if not self.api_url and self.provider not in LOCAL_PROVIDERS:
            raise ConfigurationError(
                f'Unknown provider "{self.provider}". Set api_url or use one of: {", ".join(LOCAL_PROVIDERS)}'
            )
        return True
