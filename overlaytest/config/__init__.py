"""Configuration loading and validation for overlaytest."""

from overlaytest.config.loader import OverlayTestConfig, get_version, load_config
from overlaytest.config.validator import validate_config

__all__ = ["OverlayTestConfig", "get_version", "load_config", "validate_config"]
