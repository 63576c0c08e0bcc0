"""Typed view of settings.yaml: collaborator models, prompt templates, debate defaults."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    update_system: str
    update_user: str
    chat_system: str


@dataclass
class DefaultsConfig:
    provider: str
    output_dir: Path
    leaning_weight: float = 0.7


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


_PROMPT_KEYS = ("update_system", "update_user", "chat_system")


def _parse_model(name: str, raw: dict) -> ModelConfig:
    return ModelConfig(
        name=name,
        sdk=raw["sdk"],
        model=raw["model"],
        api_key_env=raw["api_key_env"],
        timeout_sec=int(raw["timeout_sec"]),
        max_tokens=int(raw["max_tokens"]),
        base_url=raw.get("base_url"),
    )


def _has_key(model_cfg: ModelConfig) -> bool:
    return bool(os.environ.get(model_cfg.api_key_env, "").strip())


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises:
        FileNotFoundError: If the settings file is missing.
        ValueError: If a prompt template is missing, the default provider is
            not configured, or leaning_weight is outside [0, 1].

    Providers without an API key are logged, not rejected; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    models = {name: _parse_model(name, model_raw) for name, model_raw in raw["models"].items()}

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        output_dir=Path(defaults_raw["output_dir"]),
        leaning_weight=float(defaults_raw.get("leaning_weight", 0.7)),
    )
    if defaults.provider not in models:
        raise ValueError(f"Default provider '{defaults.provider}' has no entry under models")
    if not 0.0 <= defaults.leaning_weight <= 1.0:
        raise ValueError(f"leaning_weight must be within [0, 1], got {defaults.leaning_weight}")

    prompts_raw = raw["prompts"]
    missing = [key for key in _PROMPT_KEYS if not prompts_raw.get(key)]
    if missing:
        raise ValueError(f"Missing prompt templates: {', '.join(missing)}")
    prompts = PromptsConfig(**{key: prompts_raw[key] for key in _PROMPT_KEYS})

    available_providers = {name for name, cfg in models.items() if _has_key(cfg)}
    for name, cfg in models.items():
        if name in available_providers:
            logger.info("Provider available: %s", name)
        else:
            logger.info("Provider skipped (no API key): %s, set %s in .env", name, cfg.api_key_env)

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )
