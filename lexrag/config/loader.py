"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

    1. config/config.yaml  -- defaults checked into the repo
    2. .env file           -- local developer overrides (not committed)
    3. environment vars    -- deployment-time values, credentials

:func:`load_config` reads the YAML file and deep-merges every setting that
was explicitly provided through ``.env`` or the environment on top of it.
:func:`build_provider_config` turns the merged ``providers`` section into
the :class:`~lexrag.models.provider.ProviderConfig` the orchestrator needs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from lexrag.config.settings import Settings
from lexrag.models.provider import AIProvider, ProviderConfig
from lexrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

# Settings field -> location in the merged config dict.
_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "openai_api_key": ("providers", "openai", "api_key"),
    "openai_organization": ("providers", "openai", "organization"),
    "openai_base_url": ("providers", "openai", "base_url"),
    "gemini_api_key": ("providers", "gemini", "api_key"),
    "anthropic_api_key": ("providers", "anthropic", "api_key"),
    "ollama_base_url": ("providers", "local", "base_url"),
    "ai_primary_provider": ("providers", "primary"),
    "health_check_interval_ms": ("providers", "health_check_interval_ms"),
    "budget_limit": ("providers", "budget_limit"),
    "chroma_persist_dir": ("vector_store", "persist_directory"),
    "chroma_collection": ("vector_store", "collection"),
    "chroma_host": ("vector_store", "host"),
    "chroma_port": ("vector_store", "port"),
    "chunk_size": ("ingestion", "chunk_size"),
    "chunk_overlap": ("ingestion", "overlap"),
    "app_env": ("app", "env"),
    "log_level": ("logging", "level"),
}


def load_config(path: str | None = None, settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge explicitly-set environment Settings over it.

    Args:
        path: YAML file; defaults to ``settings.config_path``.
        settings: Settings instance; a fresh one is read from the environment
            when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    settings = settings or Settings()
    config_path = Path(path or settings.config_path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(message=f"invalid YAML in {config_path}: {exc}") from exc
    else:
        logger.warning("config_file_missing", path=str(config_path))
        yaml_config = {}

    _deep_merge(yaml_config, _env_overrides(settings))
    return yaml_config


def _env_overrides(settings: Settings) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field_name in settings.model_fields_set:
        location = _ENV_OVERRIDES.get(field_name)
        if location is None:
            continue
        value = getattr(settings, field_name)
        if value in ("", None):
            continue
        target = overrides
        for key in location[:-1]:
            target = target.setdefault(key, {})
        target[location[-1]] = value

    if "ai_fallback_providers" in settings.model_fields_set:
        overrides.setdefault("providers", {})["fallback"] = settings.fallback_providers()
    return overrides


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def build_provider_config(config: dict[str, Any]) -> ProviderConfig:
    """Validate the ``providers`` section into a :class:`ProviderConfig`.

    Raises:
        ConfigurationError: If the section is missing or invalid.
    """
    section = dict(config.get("providers") or {})
    if "primary" not in section:
        raise ConfigurationError(message="providers.primary is not configured")

    # a block with no values at all is treated as absent
    for provider in AIProvider:
        if not section.get(provider.value):
            section.pop(provider.value, None)

    try:
        return ProviderConfig.model_validate(section)
    except ValidationError as exc:
        raise ConfigurationError(message=f"invalid provider configuration: {exc}") from exc
