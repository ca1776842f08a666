"""Schema validation for overlaytest configuration files."""

from typing import Any, Dict, List

import jsonschema

from overlaytest.errors import ConfigError

# JSON Schema for the optional YAML configuration file
CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "namespace": {"type": "string", "minLength": 1},
        "name": {
            "type": "string",
            "minLength": 1,
            "maxLength": 63,
            "pattern": "^[a-z0-9]([-a-z0-9]*[a-z0-9])?$",
        },
        "image": {"type": "string", "minLength": 1},
        "kubeconfig": {"type": "string"},
        "readyPollInterval": {"type": "number", "minimum": 0},
        "networkPollInterval": {"type": "number", "minimum": 0},
        "readyTimeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "networkTimeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "probeTimeout": {"type": "number", "exclusiveMinimum": 0},
        "concurrency": {"type": "integer", "minimum": 1},
    },
}


def validate_config(data: Dict[str, Any]) -> bool:
    """Validate a configuration dictionary against the schema.

    Args:
        data: Parsed YAML configuration.

    Returns:
        True if validation passes.

    Raises:
        ConfigError: If validation fails.
    """
    try:
        jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Schema validation failed: {e.message}", [str(e)])

    errors = _semantic_validation(data)
    if errors:
        raise ConfigError("Semantic validation failed", errors)

    return True


def _semantic_validation(data: Dict[str, Any]) -> List[str]:
    """Checks the schema cannot express."""
    errors = []

    for interval_key, timeout_key in (
        ("readyPollInterval", "readyTimeout"),
        ("networkPollInterval", "networkTimeout"),
    ):
        interval = data.get(interval_key)
        timeout = data.get(timeout_key)
        if interval is not None and timeout is not None and interval > timeout:
            errors.append(
                f"{interval_key} ({interval}) must not exceed {timeout_key} ({timeout})"
            )

    image = data.get("image", "")
    if image and any(c.isspace() for c in image):
        errors.append(f"Image reference contains whitespace: {image!r}")

    return errors
