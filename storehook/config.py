from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

Platform = Literal["apple", "google"]

_FALSE_VALUES = {"0", "false", "no", "off"}


class AppleConfig(BaseModel):
    """Settings for App Store signed notifications."""

    enabled: bool = True
    jwks_url: str = ""
    verify_signatures: bool = True
    algorithms: List[str] = Field(default_factory=lambda: ["ES256", "RS256"])
    audience: Optional[str] = None
    issuer: Optional[str] = None
    leeway: int = 0
    fetch_timeout: float = 5.0
    fetch_retries: int = Field(default=1, ge=0, le=1)
    retry_backoff: float = 0.5


class GoogleConfig(BaseModel):
    """Settings for Play Store developer notifications."""

    enabled: bool = True


class SinkConfig(BaseModel):
    """Outbound event sink settings."""

    backend: Literal["inmemory"] = "inmemory"


class StorehookConfig(BaseModel):
    """Top-level configuration model."""

    apple: AppleConfig = AppleConfig()
    google: GoogleConfig = GoogleConfig()
    sink: SinkConfig = SinkConfig()
    handler_order: List[Platform] = Field(default_factory=lambda: ["apple", "google"])


def load_config(path: Optional[str] = None) -> StorehookConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to STOREHOOK_CONFIG env
            variable or 'storehook.yaml' in the current directory.
    """

    config_path = path or os.getenv("STOREHOOK_CONFIG", "storehook.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = StorehookConfig(**data)
    else:
        config = StorehookConfig()

    env_jwks_url = os.getenv("STOREHOOK_APPLE_JWKS_URL")
    if env_jwks_url:
        config.apple.jwks_url = env_jwks_url
    env_verify = os.getenv("STOREHOOK_VERIFY_SIGNATURES")
    if env_verify:
        config.apple.verify_signatures = env_verify.strip().lower() not in _FALSE_VALUES
    return config
