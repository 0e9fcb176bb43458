"""OpenRouter HTTP API client: streamed chat completions and model listing."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

import httpx

from gb9k.core.config import Settings

log = logging.getLogger(__name__)


class OpenRouterError(Exception):
    """Raised when the OpenRouter API returns an error."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class OpenRouterNotAvailableError(OpenRouterError):
    """Raised when OpenRouter cannot be reached or the connection drops."""


class OpenRouterClient:
    """Wrapper around the OpenRouter chat completions and models endpoints.

    ``transport`` is passed to httpx.Client; tests use httpx.MockTransport.
    """

    def __init__(
        self,
        api_key: str,
        settings: Settings,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("OpenRouter API key is required")
        self._api_key = api_key
        self._settings = settings
        self._transport = transport

    @property
    def chat_url(self) -> str:
        return self._settings.chat_url

    @property
    def models_url(self) -> str:
        return self._settings.models_url

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._settings.referer,
            "X-Title": self._settings.title,
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._settings.timeout, transport=self._transport)

    @contextmanager
    def stream_chat(
        self,
        model: str,
        messages: list[dict[str, str]],
    ) -> Generator[Iterator[str], None, None]:
        """POST a streaming chat completion and yield the response lines.

        The status is checked before anything is yielded, so the caller only
        sees lines of a successful response.

        Raises:
            OpenRouterError: Non-success status (message carries status and body).
            OpenRouterNotAvailableError: Connection failed or dropped mid-stream.
        """
        body = {"model": model, "messages": messages, "stream": True}
        log.debug("POST %s (model=%s, %d messages)", self.chat_url, model, len(messages))
        try:
            with self._client() as client, client.stream(
                "POST", self.chat_url, headers=self.headers(), json=body,
            ) as resp:
                if not resp.is_success:
                    resp.read()
                    raise OpenRouterError(
                        f"OpenRouter API error ({resp.status_code}): {resp.text}",
                        status_code=resp.status_code,
                        body=resp.text,
                    )
                yield resp.iter_lines()
        except httpx.TransportError as e:
            raise OpenRouterNotAvailableError(
                f"OpenRouter not reachable at {self.chat_url}: {e}"
            ) from e

    def list_models(self) -> list[dict]:
        """Return the raw model entries from GET /models."""
        try:
            with self._client() as client:
                resp = client.get(self.models_url, headers=self.headers())
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise OpenRouterError(
                f"Failed to fetch models ({e.response.status_code}): {e.response.text}",
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e
        except httpx.TransportError as e:
            raise OpenRouterNotAvailableError(
                f"OpenRouter not reachable at {self.models_url}: {e}"
            ) from e
        except ValueError as e:
            raise OpenRouterError(f"Invalid models response: {e}") from e

        models = data.get("data") if isinstance(data, dict) else None
        return models if isinstance(models, list) else []
