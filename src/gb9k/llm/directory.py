"""Model directory: known model ids and per-token prices, with a local cache.

The cache file holds ``{"timestamp": <epoch-ms>, "models": [...]}`` where
``models`` are the raw entries returned by OpenRouter's /models endpoint.
Only ``load_models`` (the listing/refresh path) writes or deletes it; a chat
run reads it through ``cached_models`` and never touches it.
"""

from __future__ import annotations

import contextlib
import json
import logging
import time
from decimal import Decimal

from gb9k.core.config import Settings
from gb9k.core.fileutil import atomic_write
from gb9k.core.models import ModelQuote
from gb9k.llm.openrouter import OpenRouterClient

log = logging.getLogger(__name__)

BUILTIN_MODELS: list[str] = [
    "anthropic/claude-3.5-sonnet",
    "anthropic/claude-3.5-haiku",
    "anthropic/claude-3-opus",
    "openai/gpt-4o",
    "openai/gpt-4o-mini",
    "openai/o1-mini",
    "openai/o1-preview",
    "google/gemini-pro-1.5",
    "google/gemini-flash-1.5",
    "meta-llama/llama-3.1-405b-instruct",
    "meta-llama/llama-3.1-70b-instruct",
    "mistralai/mistral-large",
    "deepseek/deepseek-chat",
    "qwen/qwen-2.5-coder-32b-instruct",
]


def _now_ms() -> int:
    return int(time.time() * 1000)


def format_price(price: Decimal | float | None) -> str:
    """Format a per-token price as dollars per 1K tokens, or N/A."""
    if not price:
        return "N/A"
    return f"${float(price) * 1000:.3f}/1K"


class ModelDirectory:
    """Known models and price quotes, backed by OpenRouter and a 24h cache."""

    def __init__(self, settings: Settings, client: OpenRouterClient | None = None) -> None:
        self._settings = settings
        self._client = client
        self._cache_path = settings.models_cache_path

    # --- Cache ---

    def _read_cache(self) -> dict | None:
        """Return the validated cache dict, or None if missing.

        Raises:
            ValueError: The cache exists but is corrupt or has the wrong shape.
        """
        if not self._cache_path.exists():
            return None
        try:
            data = json.loads(self._cache_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"unreadable cache: {e}") from e
        if not (
            isinstance(data, dict)
            and isinstance(data.get("models"), list)
            and data["models"]
            and isinstance(data.get("timestamp"), (int, float))
        ):
            raise ValueError("cache is invalid or empty")
        return data

    def _write_cache(self, models: list[dict]) -> None:
        payload = {"timestamp": _now_ms(), "models": models}
        atomic_write(self._cache_path, json.dumps(payload, indent=2))
        log.debug("Cached %d models to %s", len(models), self._cache_path)

    def clear_cache(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._cache_path.unlink()

    def cached_models(self) -> list[dict]:
        """Read-only access to cached models, ignoring age. Never writes."""
        try:
            data = self._read_cache()
        except ValueError as e:
            log.warning("Ignoring model cache %s: %s", self._cache_path, e)
            return []
        return data["models"] if data else []

    def load_models(self, refresh: bool = False) -> list[dict]:
        """Return models from a fresh cache, else fetch from OpenRouter and cache.

        A corrupt cache is deleted and refetched. An empty API response is
        returned but not cached.

        Raises:
            OpenRouterError: The models endpoint returned an error.
        """
        if not refresh:
            try:
                data = self._read_cache()
            except ValueError as e:
                log.warning("Invalid model cache, clearing it: %s", e)
                self.clear_cache()
                data = None
            if data is not None:
                age = _now_ms() - data["timestamp"]
                if age < self._settings.cache_ttl_ms:
                    log.debug("Using cached models (%d models, age: %ss)", len(data["models"]), age / 1000)
                    return data["models"]
                log.debug("Model cache expired (age: %ss)", age / 1000)

        if self._client is None:
            raise RuntimeError("ModelDirectory needs an OpenRouterClient to fetch models")

        models = self._client.list_models()
        if models:
            self._write_cache(models)
        else:
            log.warning("No models in API response; not caching.")
        return models

    # --- Lookup ---

    def known_model_ids(self, models: list[dict] | None = None) -> set[str]:
        """Built-in ids plus every id in ``models`` (default: the cache)."""
        if models is None:
            models = self.cached_models()
        ids = set(BUILTIN_MODELS)
        ids.update(str(m["id"]) for m in models if isinstance(m, dict) and m.get("id"))
        return ids

    def get_quote(self, model_id: str, models: list[dict] | None = None) -> ModelQuote | None:
        if models is None:
            models = self.cached_models()
        for m in models:
            if isinstance(m, dict) and m.get("id") == model_id:
                return ModelQuote.from_api(m)
        return None

    def quotes(self, models: list[dict]) -> list[ModelQuote]:
        return [ModelQuote.from_api(m) for m in models if isinstance(m, dict) and m.get("id")]

    def search(self, term: str, models: list[dict]) -> list[ModelQuote]:
        """Case-insensitive filter on id and display name."""
        needle = term.lower()
        return [
            q for q in self.quotes(models)
            if needle in q.id.lower() or needle in q.name.lower()
        ]
