"""Model description and resolution against local providers (LM Studio, Ollama)."""

from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from .errors import ConfigurationError
from .logger import get_logger

_log = get_logger("models")

LOCAL_PROVIDERS: Dict[str, str] = {
    "lm-studio": "http://127.0.0.1:1234/v1",
    "ollama": "http://127.0.0.1:11434/v1",
}

PROVIDER_DISPLAY_NAMES = {"lm-studio": "LM Studio", "ollama": "Ollama"}

DEFAULT_CONTEXT_WINDOW = 128_000
DEFAULT_MAX_TOKENS = 16_384


@dataclass(frozen=True)
class Model:
    id: str
    base_url: str
    provider: str
    context_window: int = DEFAULT_CONTEXT_WINDOW
    max_tokens: int = DEFAULT_MAX_TOKENS

    @property
    def name(self) -> str:
        return self.id


async def discover_models(base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> List[str]:
    """List model ids served at ``base_url``; empty when the server is unreachable."""
    url = f"{base_url.rstrip('/')}/models"
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0), transport=transport) as client:
            response = await client.get(url)
        if response.status_code >= 400:
            return []
        data = response.json().get("data") or []
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        _log.info("model discovery at %s failed: %s", url, e)
        return []
    return [str(m["id"]) for m in data if isinstance(m, dict) and m.get("id")]


async def resolve_model(
    provider: str,
    model_id: Optional[str] = None,
    url: Optional[str] = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Model:
    """Pick the model to talk to.

    Without an explicit id the first model loaded in the provider is used.
    Providers other than the known local ones need an explicit ``url``.
    """
    base_url = url or LOCAL_PROVIDERS.get(provider)
    if not base_url:
        raise ConfigurationError(
            f'Unknown provider "{provider}". Supported: {", ".join(LOCAL_PROVIDERS)} '
            "(or pass an explicit URL)"
        )

    if not model_id:
        models = await discover_models(base_url, transport=transport)
        if not models:
            display = PROVIDER_DISPLAY_NAMES.get(provider, provider)
            raise ConfigurationError(
                f"No models loaded in {display} at {base_url}. "
                f"Make sure {display} is running with a model loaded."
            )
        model_id = models[0]
        _log.info("discovered model %s at %s", model_id, base_url)

    return Model(
        id=model_id,
        base_url=base_url,
        provider=provider,
        context_window=context_window,
        max_tokens=max_tokens,
    )
