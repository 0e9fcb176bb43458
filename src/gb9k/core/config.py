"""Configuration loader for gb9k."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

log = logging.getLogger(__name__)

DEFAULTS: dict = {
    "home": "~/.gb9k",
    "prompt_file": "_PROMPT.md",
    "openrouter": {
        "chat_url": "https://openrouter.ai/api/v1/chat/completions",
        "models_url": "https://openrouter.ai/api/v1/models",
        "referer": "https://github.com/sosaysthecaptain/gb9k",
        "title": "gb9k",
        "timeout": 120.0,
    },
    "chat": {
        "default_model": "anthropic/claude-3.5-sonnet",
        "system_prompt": (
            "You are an expert software engineer helping a developer with their "
            "project. The first user message contains the contents of the "
            "relevant project files, each preceded by a line with its path. "
            "Answer concisely and use markdown code blocks for code."
        ),
    },
    "models": {
        "cache_ttl_hours": 24,
    },
    "files": {
        "extensions": [
            ".js", ".ts", ".jsx", ".tsx",
            ".json", ".py", ".java", ".cpp",
            ".c", ".cs", ".rb", ".php", ".go", ".md", ".txt",
        ],
        "manifests": ["package.json"],
        "skip_dirs": ["node_modules", ".git", "dist", "build"],
        "skip_files": ["package-lock.json", "yarn.lock", ".gitignore"],
    },
}


def resolve_home() -> Path:
    """Resolve GB9K_HOME: env var > default ~/.gb9k."""
    env_home = os.environ.get("GB9K_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path("~/.gb9k").expanduser().resolve()


def config_path(home: Path | None = None) -> Path:
    """Return the path to config.yaml."""
    if home is None:
        home = resolve_home()
    return home / "config.yaml"


def load_config(path: Path | None = None) -> dict:
    """Load config.yaml and merge with defaults.

    Args:
        path: Explicit path to config.yaml. If None, uses default location.

    Returns:
        Merged configuration dict.
    """
    if path is None:
        path = config_path()

    user_config: dict = {}
    if path.exists():
        try:
            raw = path.read_text(encoding="utf-8")
            user_config = yaml.safe_load(raw) or {}
        except Exception:
            log.warning("Failed to read config at %s, using defaults", path, exc_info=True)

    if not isinstance(user_config, dict):
        log.warning("Config at %s is not a mapping, using defaults", path)
        user_config = {}

    merged = _deep_merge(DEFAULTS, user_config)

    home_str = os.environ.get("GB9K_HOME") or merged.get("home", "~/.gb9k")
    merged["home"] = str(Path(home_str).expanduser().resolve())

    return merged


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@dataclass
class Settings:
    """Resolved settings handed to every component.

    Holds the per-user paths (API key, model cache) so that nothing else has
    to know where they live.
    """

    home: Path
    prompt_file: str = "_PROMPT.md"
    chat_url: str = DEFAULTS["openrouter"]["chat_url"]
    models_url: str = DEFAULTS["openrouter"]["models_url"]
    referer: str = DEFAULTS["openrouter"]["referer"]
    title: str = DEFAULTS["openrouter"]["title"]
    timeout: float = 120.0
    default_model: str = DEFAULTS["chat"]["default_model"]
    system_prompt: str = DEFAULTS["chat"]["system_prompt"]
    cache_ttl_hours: float = 24
    extensions: list[str] = field(default_factory=lambda: list(DEFAULTS["files"]["extensions"]))
    manifests: list[str] = field(default_factory=lambda: list(DEFAULTS["files"]["manifests"]))
    skip_dirs: list[str] = field(default_factory=lambda: list(DEFAULTS["files"]["skip_dirs"]))
    skip_files: list[str] = field(default_factory=lambda: list(DEFAULTS["files"]["skip_files"]))

    @property
    def api_key_path(self) -> Path:
        return self.home / "api_key"

    @property
    def models_cache_path(self) -> Path:
        return self.home / "models_cache.json"

    @property
    def cache_ttl_ms(self) -> int:
        return int(self.cache_ttl_hours * 60 * 60 * 1000)

    @classmethod
    def from_config(cls, config: dict) -> Settings:
        """Build Settings from a merged config dict (see load_config)."""
        router = config.get("openrouter", {})
        chat = config.get("chat", {})
        files = config.get("files", {})
        return cls(
            home=Path(config.get("home") or resolve_home()),
            prompt_file=config.get("prompt_file", "_PROMPT.md"),
            chat_url=router.get("chat_url", DEFAULTS["openrouter"]["chat_url"]),
            models_url=router.get("models_url", DEFAULTS["openrouter"]["models_url"]),
            referer=router.get("referer", DEFAULTS["openrouter"]["referer"]),
            title=router.get("title", DEFAULTS["openrouter"]["title"]),
            timeout=float(router.get("timeout", 120.0)),
            default_model=chat.get("default_model", DEFAULTS["chat"]["default_model"]),
            system_prompt=chat.get("system_prompt", DEFAULTS["chat"]["system_prompt"]),
            cache_ttl_hours=float(config.get("models", {}).get("cache_ttl_hours", 24)),
            extensions=list(files.get("extensions", DEFAULTS["files"]["extensions"])),
            manifests=list(files.get("manifests", DEFAULTS["files"]["manifests"])),
            skip_dirs=list(files.get("skip_dirs", DEFAULTS["files"]["skip_dirs"])),
            skip_files=list(files.get("skip_files", DEFAULTS["files"]["skip_files"])),
        )


def load_settings(home: Path | None = None) -> Settings:
    """Load config.yaml from home (or GB9K_HOME) and return Settings."""
    home_path = (home or resolve_home()).expanduser().resolve()
    config = load_config(config_path(home_path))
    if home is not None:
        config["home"] = str(home_path)
    return Settings.from_config(config)
