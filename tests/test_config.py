"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from argmap.tactics import TACTIC_KEYS
from config.config_loader import AppConfig, ModelConfig, PromptsConfig, load_config


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    settings = {
        "defaults": {
            "provider": "claude",
            "output_dir": "./debates",
            "leaning_weight": 0.5,
        },
        "models": {
            "claude": {
                "sdk": "anthropic",
                "model": "claude-sonnet-4-5-20250929",
                "api_key_env": "TEST_CLAUDE_KEY",
                "timeout_sec": 120,
                "max_tokens": 8192,
            },
            "grok": {
                "sdk": "openai",
                "model": "grok-4",
                "api_key_env": "TEST_XAI_KEY",
                "base_url": "https://api.x.ai/v1",
                "timeout_sec": 120,
                "max_tokens": 8192,
            },
        },
        "prompts": {
            "update_system": "Tactics: {tactic_keys}",
            "update_user": "{current_map}\n{speaker}: {statement}",
            "chat_system": "Map: {current_map}",
        },
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.provider == "claude"
    assert config.defaults.leaning_weight == 0.5
    assert isinstance(config.defaults.output_dir, Path)


def test_leaning_weight_defaults_when_missing(minimal_settings):
    raw = yaml.safe_load(minimal_settings.read_text(encoding="utf-8"))
    del raw["defaults"]["leaning_weight"]
    minimal_settings.write_text(yaml.dump(raw), encoding="utf-8")
    config = load_config(minimal_settings)
    assert config.defaults.leaning_weight == 0.7


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.models["claude"], ModelConfig)
    assert config.models["claude"].model == "claude-sonnet-4-5-20250929"
    assert config.models["claude"].base_url is None
    assert config.models["grok"].base_url == "https://api.x.ai/v1"


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert "{statement}" in config.prompts.update_user


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test-key")
    monkeypatch.delenv("TEST_XAI_KEY", raising=False)
    config = load_config(minimal_settings)
    assert config.available_providers == {"claude"}


def test_load_config_blank_key_not_available(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "   ")
    config = load_config(minimal_settings)
    assert "claude" not in config.available_providers


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_bundled_settings_prompts_render():
    """The shipped templates format cleanly with the placeholders the collaborator fills."""
    config = load_config()
    system = config.prompts.update_system.format(tactic_keys=", ".join(TACTIC_KEYS))
    assert '"argument_map": {' in system
    assert "straw_man" in system
    user = config.prompts.update_user.format(current_map="{}", speaker="Blue", statement="Hi")
    assert "New statement from Blue" in user
    chat = config.prompts.chat_system.format(current_map="{}")
    assert '"reply"' in chat
    assert config.defaults.provider in config.models


def _rewrite(path: Path, mutate) -> Path:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    mutate(raw)
    path.write_text(yaml.dump(raw), encoding="utf-8")
    return path


def test_default_provider_must_be_configured(minimal_settings):
    _rewrite(minimal_settings, lambda raw: raw["defaults"].update(provider="mystery"))
    with pytest.raises(ValueError, match="mystery"):
        load_config(minimal_settings)


def test_leaning_weight_out_of_range(minimal_settings):
    _rewrite(minimal_settings, lambda raw: raw["defaults"].update(leaning_weight=1.5))
    with pytest.raises(ValueError, match="leaning_weight"):
        load_config(minimal_settings)


def test_missing_prompt_template(minimal_settings):
    _rewrite(minimal_settings, lambda raw: raw["prompts"].pop("chat_system"))
    with pytest.raises(ValueError, match="chat_system"):
        load_config(minimal_settings)
