"""HTTP client for OpenAI-compatible chat completion endpoints."""

import json
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from .errors import TransportError
from .history import Message
from .logger import get_logger, truncate

_log = get_logger("streaming")

DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_READ_TIMEOUT = 300.0


class StreamingClient:
    """Sends chat requests and yields the raw event-stream lines.

    Use as an async context manager; the underlying ``httpx.AsyncClient`` is
    opened on enter and closed on exit. A ``transport`` may be supplied for
    tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        max_tokens: int = 16384,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
        self._client = None

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        # Local servers ignore auth; hosted OpenAI-compatible ones need it.
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_payload(
        self,
        messages: Sequence[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        stream: bool = True,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "stream": stream,
            "messages": [m.to_dict() for m in messages],
        }
        if tools:
            payload["tools"] = tools
        return payload

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")
        return self._client

    async def stream_lines(self, payload: Dict[str, Any]) -> AsyncIterator[str]:
        """POST a streaming request and yield response lines as they arrive.

        Raises:
            TransportError: non-2xx status, connection failure or timeout.
        """
        client = self._require_client()
        url = f"{self.base_url}/chat/completions"
        _log.info(
            "chat request: url=%s model=%s msgs=%d tools=%d",
            url, self.model, len(payload.get("messages", [])), len(payload.get("tools", [])),
        )
        started = time.time()
        try:
            async with client.stream("POST", url, headers=self._get_headers(), json=payload) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    _log.warning("chat request failed: HTTP %d %s", response.status_code, truncate(body))
                    raise TransportError(
                        f"LLM API error (HTTP {response.status_code}): {body or 'Unknown error'}",
                        status_code=response.status_code,
                    )
                async for line in response.aiter_lines():
                    yield line
        except httpx.TimeoutException as e:
            _log.warning("chat request timed out after %.1fs: %s", time.time() - started, e)
            raise TransportError(f"Request to {url} timed out: {type(e).__name__}") from e
        except httpx.HTTPError as e:
            _log.warning("chat request failed: %s: %s", type(e).__name__, e)
            raise TransportError(f"Request to {url} failed: {e}") from e
        _log.info("chat stream closed after %.1fs", time.time() - started)

    async def complete(self, messages: Sequence[Message], temperature: Optional[float] = None,
                       max_tokens: Optional[int] = None) -> str:
        """Non-streaming completion; returns the assistant text."""
        client = self._require_client()
        url = f"{self.base_url}/chat/completions"
        payload = self.build_payload(messages, stream=False)
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        try:
            response = await client.post(url, headers=self._get_headers(), json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        if response.status_code >= 400:
            raise TransportError(
                f"LLM API error (HTTP {response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
            content = data["choices"][0]["message"].get("content")
        except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected response from {url}: {e}") from e
        return content or ""
