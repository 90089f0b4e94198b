from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_BASE_URL, DEFAULT_TIMEOUT


class ApiConfig(BaseModel):
    """Connection settings for the flow query service."""

    base_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    timeout: Optional[float] = DEFAULT_TIMEOUT


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["httpx", "inmemory"] = "httpx"


class FlowtrackConfig(BaseModel):
    """Top-level configuration model."""

    api: ApiConfig = ApiConfig()
    transport: TransportConfig = TransportConfig()


def load_config(path: Optional[str] = None) -> FlowtrackConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWTRACK_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWTRACK_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowtrackConfig(**data)
    else:
        config = FlowtrackConfig()

    env_base_url = os.getenv("FLOWTRACK_BASE_URL")
    if env_base_url:
        config.api.base_url = env_base_url
    env_token = os.getenv("FLOWTRACK_TOKEN")
    if env_token:
        config.api.token = env_token
    return config
