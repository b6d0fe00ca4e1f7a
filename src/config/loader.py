"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Layers (later layers override earlier):
#
#   1. config/config.yaml: static defaults checked into the repo
#      (prompt windows, sampling temperatures, retrieval limits)
#   2. .env file / env vars, via Settings, for deployment-specific values
#
# _deep_merge does recursive dict merging:
#   base      = {"retrieval": {"limit": 5}}
#   overrides = {"retrieval": {"num_candidates_factor": 10}}
#   result    = {"retrieval": {"limit": 5, "num_candidates_factor": 10}}
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings

# Values used when config.yaml is missing or omits a key.
DEFAULT_CONFIG: dict[str, Any] = {
    "retrieval": {
        "limit": 5,
        "num_candidates_factor": 10,
    },
    "classifier": {
        "history_window": 6,
    },
    "handlers": {
        "small_talk": {"temperature": 0.7, "max_tokens": 150},
        "knowledge": {"temperature": 0.3, "max_tokens": 1000},
        "transaction": {"history_window": 4},
        "ticket": {
            "history_window": 5,
            "clarify_temperature": 0.7,
            "clarify_max_tokens": 250,
            "confirm_max_tokens": 200,
        },
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge environment-derived values on top.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to derive overrides from.  A fresh instance is
            read from the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config: dict[str, Any] = {}
    _deep_merge(config, DEFAULT_CONFIG)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    app_settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": app_settings.app_host,
            "port": app_settings.app_port,
            "env": app_settings.app_env,
        },
        "llm": {
            "primary_model": app_settings.primary_llm_openai_model_name,
            "fallback_model": app_settings.fallback_llm_anthropic_model_name,
            "max_retries": app_settings.llm_max_retries,
            "timeout_seconds": app_settings.llm_timeout_seconds,
            "available_providers": app_settings.get_available_llm_providers(),
        },
        "embedding": {
            "model": app_settings.openai_embedding_model,
            "batch_size": app_settings.embedding_batch_size,
        },
        "logging": {
            "level": app_settings.log_level,
        },
    }
    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif isinstance(value, dict):
            base[key] = {}
            _deep_merge(base[key], value)
        else:
            base[key] = value
