from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel


class RunbackConfig(BaseModel):
    """Top-level configuration model."""

    log_level: str = "INFO"
    store_path: Optional[str] = None
    document_version: str = "1"


def load_config(path: Optional[str] = None) -> RunbackConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to RUNBACK_CONFIG env
            variable or 'runback.yaml' in the current directory.
    """

    config_path = path or os.getenv("RUNBACK_CONFIG", "runback.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = RunbackConfig(**data)
    else:
        config = RunbackConfig()

    env_level = os.getenv("RUNBACK_LOG_LEVEL")
    if env_level:
        config.log_level = env_level
    env_store = os.getenv("RUNBACK_STORE_PATH")
    if env_store:
        config.store_path = env_store
    return config
