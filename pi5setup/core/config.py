# pi5setup/core/config.py

import copy
import json
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import Draft7Validator

from pi5setup.core.io import atomic_write_text
from pi5setup.core.logger import LoggerProxy

SCHEMA: dict[str, Any] = json.loads(
    resources.files("pi5setup.schema").joinpath("config.v1.schema.json").read_text("utf-8")
)

log = LoggerProxy(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "pi5setup" / "config.json"

# grab the un-hooked "properties" validator
_default_properties = Draft7Validator.VALIDATORS["properties"]


def _set_defaults(validator, properties, instance, schema):
    """
    jsonschema hook: whenever a property has a 'default', insert it,
    then delegate to the original Draft7 `properties` validator.
    """
    if not isinstance(instance, dict):
        return
    for prop, subschema in properties.items():
        if "default" in subschema:
            instance.setdefault(prop, copy.deepcopy(subschema["default"]))

    yield from _default_properties(validator, properties, instance, schema)


_DefaultFillingValidator = jsonschema.validators.extend(
    Draft7Validator, {"properties": _set_defaults}
)


def _deep_update(base: dict, updates: dict) -> None:
    """Recursively update base with updates (mutates base)."""
    for k, v in updates.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_update(base[k], v)
        else:
            base[k] = v


def schema_defaults() -> dict[str, Any]:
    """Configuration made only of schema defaults."""
    config: dict[str, Any] = {}
    for _ in _DefaultFillingValidator(SCHEMA).iter_errors(config):
        pass
    return config


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """
    Loads and validates configuration against the JSON Schema.
    Fills in any missing properties with the schema's own default values.

    An unreadable or invalid user file falls back to schema defaults with an
    error logged; a merged result that fails validation raises.
    """
    log.info("Attempting to load configuration from: %s", config_path)
    config = schema_defaults()
    final_validator = Draft7Validator(SCHEMA)

    if not config_path.is_file():
        log.warning("No config at %s; using schema defaults.", config_path)
        return config

    try:
        user_config = json.loads(config_path.read_text())
        final_validator.validate(user_config)
    except json.JSONDecodeError as e:
        log.error("Error parsing JSON: %s", e)
        log.warning("Using schema defaults only.")
        return config
    except jsonschema.ValidationError as e:
        log.error("Configuration validation error: %s", e.message)
        log.warning("Falling back to schema defaults.")
        return config

    _deep_update(config, user_config)
    # Nested sections supplied partially by the user pick up their defaults here
    for _ in _DefaultFillingValidator(SCHEMA).iter_errors(config):
        pass

    try:
        final_validator.validate(config)
    except jsonschema.ValidationError as e:
        log.error("Merged configuration failed schema validation: %s", e.message)
        raise

    log.info("Configuration loaded and validated.")
    return config


def generate_default_config(config_path: Path = DEFAULT_CONFIG_PATH) -> bool:
    try:
        atomic_write_text(config_path, json.dumps(schema_defaults(), indent=4) + "\n")
        log.info("Default configuration file created at %s.", config_path)
        return True
    except OSError as e:
        log.error("Failed to write default config: %s", e)
        return False
