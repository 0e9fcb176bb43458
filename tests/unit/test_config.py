"""Tests for gb9k.core.config."""

from pathlib import Path

from gb9k.core.config import DEFAULTS, Settings, _deep_merge, load_config, load_settings


class TestDeepMerge:
    def test_simple_override(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3}
        result = _deep_merge(base, override)
        assert result == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"chat": {"default_model": "a/b", "system_prompt": "hi"}}
        override = {"chat": {"default_model": "c/d"}}
        result = _deep_merge(base, override)
        assert result["chat"]["default_model"] == "c/d"
        assert result["chat"]["system_prompt"] == "hi"

    def test_new_keys(self):
        base = {"a": 1}
        override = {"b": 2}
        result = _deep_merge(base, override)
        assert result == {"a": 1, "b": 2}

    def test_does_not_mutate_base(self):
        base = {"a": {"b": 1}}
        override = {"a": {"b": 2}}
        _deep_merge(base, override)
        assert base["a"]["b"] == 1


class TestLoadConfig:
    def test_returns_defaults_when_no_file(self, tmp_path: Path):
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config["chat"]["default_model"] == DEFAULTS["chat"]["default_model"]
        assert config["models"]["cache_ttl_hours"] == 24

    def test_loads_and_merges(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("chat:\n  default_model: openai/gpt-4o\n")

        config = load_config(config_file)
        assert config["chat"]["default_model"] == "openai/gpt-4o"
        # Defaults preserved for unset keys
        assert config["chat"]["system_prompt"] == DEFAULTS["chat"]["system_prompt"]

    def test_home_env_override(self, tmp_path: Path, monkeypatch):
        custom_home = tmp_path / "custom"
        monkeypatch.setenv("GB9K_HOME", str(custom_home))

        config = load_config(tmp_path / "nonexistent.yaml")
        assert config["home"] == str(custom_home.resolve())

    def test_handles_empty_file(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        config = load_config(config_file)
        assert config["chat"]["default_model"] == DEFAULTS["chat"]["default_model"]

    def test_handles_corrupt_yaml(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(": : : invalid yaml [[[")

        # Should fall back to defaults without crashing
        config = load_config(config_file)
        assert "chat" in config

    def test_handles_non_mapping(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- just\n- a list\n")

        config = load_config(config_file)
        assert config["prompt_file"] == "_PROMPT.md"


class TestSettings:
    def test_paths_derived_from_home(self, tmp_path: Path):
        settings = Settings(home=tmp_path)
        assert settings.api_key_path == tmp_path / "api_key"
        assert settings.models_cache_path == tmp_path / "models_cache.json"

    def test_cache_ttl_ms(self, tmp_path: Path):
        settings = Settings(home=tmp_path)
        assert settings.cache_ttl_ms == 24 * 60 * 60 * 1000

    def test_from_config(self, tmp_path: Path):
        config = _deep_merge(DEFAULTS, {
            "home": str(tmp_path),
            "chat": {"default_model": "openai/gpt-4o"},
            "openrouter": {"timeout": 30},
            "files": {"extensions": [".py"]},
        })
        settings = Settings.from_config(config)
        assert settings.home == tmp_path
        assert settings.default_model == "openai/gpt-4o"
        assert settings.timeout == 30.0
        assert settings.extensions == [".py"]
        assert settings.skip_dirs == DEFAULTS["files"]["skip_dirs"]

    def test_load_settings_with_explicit_home(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("GB9K_HOME", raising=False)
        (tmp_path / "config.yaml").write_text("prompt_file: CHAT.md\n")

        settings = load_settings(tmp_path)
        assert settings.home == tmp_path.resolve()
        assert settings.prompt_file == "CHAT.md"
