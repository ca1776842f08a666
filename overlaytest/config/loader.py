"""Configuration loading for overlaytest.

Values are resolved once at startup, later sources overriding earlier ones:

1. Built-in defaults
2. An optional YAML file (``--config``)
3. ``OVERLAYTEST_*`` environment variables
4. Explicit overrides (command line flags)
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

import overlaytest
from overlaytest.config.validator import validate_config
from overlaytest.errors import ConfigError


DEFAULT_NAMESPACE = "kube-system"
DEFAULT_APP_NAME = "overlaytest"
# Minimal Alpine based image with sh and ping
DEFAULT_IMAGE = "ghcr.io/eumel8/overlaytest:main"
DEFAULT_VERSION = "1.0.6"

VERSION_ENV = "APP_VERSION"
ENV_OVERRIDES = {
    "OVERLAYTEST_NAMESPACE": "namespace",
    "OVERLAYTEST_NAME": "name",
    "OVERLAYTEST_IMAGE": "image",
}

# YAML file keys -> OverlayTestConfig attributes
FILE_KEYS = {
    "namespace": "namespace",
    "name": "name",
    "image": "image",
    "kubeconfig": "kubeconfig",
    "readyPollInterval": "ready_poll_interval",
    "networkPollInterval": "network_poll_interval",
    "readyTimeout": "ready_timeout",
    "networkTimeout": "network_timeout",
    "probeTimeout": "probe_timeout",
    "concurrency": "concurrency",
}


@dataclass(frozen=True)
class OverlayTestConfig:
    """Resolved settings for a single overlaytest run."""

    namespace: str = DEFAULT_NAMESPACE
    name: str = DEFAULT_APP_NAME
    image: str = DEFAULT_IMAGE
    kubeconfig: str = ""
    reuse: bool = False
    cleanup: bool = False
    ready_poll_interval: float = 2.0
    network_poll_interval: float = 0.0
    ready_timeout: Optional[float] = None
    network_timeout: Optional[float] = None
    probe_timeout: float = 30.0
    concurrency: int = 1


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> OverlayTestConfig:
    """Build the run configuration.

    Args:
        config_path: Optional path to a YAML configuration file.
        overrides: Attribute values from the command line. ``None`` values
            are ignored so unset flags never mask lower layers.

    Returns:
        The resolved OverlayTestConfig.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    cfg = OverlayTestConfig()

    if config_path:
        cfg = replace(cfg, **_load_config_file(config_path))

    env_values = {
        attr: os.environ[var]
        for var, attr in ENV_OVERRIDES.items()
        if os.environ.get(var)
    }
    if env_values:
        cfg = replace(cfg, **env_values)

    known = {f.name for f in fields(OverlayTestConfig)}
    for key, value in (overrides or {}).items():
        if key not in known:
            raise ConfigError(f"Unknown configuration option: {key}")
        if value is not None:
            cfg = replace(cfg, **{key: value})

    if cfg.concurrency < 1:
        raise ConfigError(f"concurrency must be at least 1, got {cfg.concurrency}")

    return cfg


def _load_config_file(config_path: str) -> Dict[str, Any]:
    """Read and validate a YAML configuration file."""
    path = Path(config_path)

    if not path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    validate_config(data)

    return {FILE_KEYS[key]: value for key, value in data.items()}


def get_version(override: Optional[str] = None) -> str:
    """Resolve the application version.

    Priority: explicit override, ``APP_VERSION`` environment variable,
    the package version, then the built-in default.
    """
    if override:
        return override
    env_version = os.environ.get(VERSION_ENV)
    if env_version:
        return env_version
    return getattr(overlaytest, "__version__", None) or DEFAULT_VERSION
