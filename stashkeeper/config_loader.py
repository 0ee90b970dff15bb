from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from stashkeeper.models import Settings


load_dotenv()

DEFAULT_CONFIG_NAME = "stashkeeper.yaml"

# env var -> Settings field
ENV_OVERRIDES = {
    "STASHKEEPER_GIT": "git_executable",
    "STASHKEEPER_PATCH_FILENAME": "patch_filename",
    "STASHKEEPER_RUN_LOG": "run_log_path",
    "STASHKEEPER_AUDIT_LOG": "audit_log_path",
}


class ConfigError(ValueError):
    pass


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Build Settings from an optional YAML file plus environment overrides.

    Without an explicit path, stashkeeper.yaml in the current directory is
    used when it exists. Environment variables win over the file.
    """
    path = Path(config_path) if config_path is not None else Path(DEFAULT_CONFIG_NAME)

    raw: Dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"{path} must contain a mapping, got {type(loaded).__name__}")
        raw = loaded or {}
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {path}")

    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            raw[field_name] = value

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e
